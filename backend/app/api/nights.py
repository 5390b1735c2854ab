"""
Movie Nights API — /nights
───────────────────────────
Endpoints:
  GET  /nights                          — All nights, latest first
  GET  /nights/upcoming                 — Upcoming nights, soonest first
  GET  /nights/calendar                 — Nights with pick + average rating
  POST /nights                          — Schedule a night (caller hosts)
  GET  /nights/{id}                     — Night detail with attendees + candidates
  POST /nights/{id}/join                — Attend (idempotent)
  POST /nights/{id}/candidates          — Add a movie to the wheel
  POST /nights/{id}/status              — Move status forward
  POST /nights/{id}/spin                — Draw a winner (pending until settled)
  POST /nights/{id}/spin/settle         — Commit the pending winner as the pick
  POST /nights/{id}/spin/cancel         — Discard the pending winner
  POST /nights/{id}/complete            — Finish the night, optionally rate it

Spin declines (too few candidates, wheel already spinning, night finished,
pick locked) return 409 with the decline code in the error envelope.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.errors import api_error
from app.db.models import User
from app.db.session import get_db
from app.deps.auth import get_current_user
from app.deps.roulette import get_roulette_selector
from app.schemas.nights import (
    AddCandidateRequest,
    CalendarNightResponse,
    CompleteNightRequest,
    CompleteNightResponse,
    CreateNightRequest,
    NightCandidateResponse,
    NightDetailResponse,
    NightResponse,
    SpinResponse,
    UpdateStatusRequest,
)
from app.services.movie_service import MovieNotFoundError
from app.services.night_rules import InvalidRatingError, InvalidStatusTransitionError
from app.services.night_service import (
    CandidateAlreadyExistsError,
    NightNotFoundError,
    NoPendingSpinError,
    NoPickError,
    NotSpinnerError,
    add_candidate,
    cancel_spin,
    complete_night,
    create_night,
    get_night_detail,
    join_night,
    list_calendar,
    list_nights,
    list_upcoming_nights,
    settle_spin,
    spin,
    update_status,
)
from app.services.roulette import RouletteSelector, SpinDeclinedError
from app.services.watched_service import DuplicateWatchedEntryError

router = APIRouter()


@router.get("", response_model=list[NightResponse])
def get_nights(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[dict]:
    return list_nights(db)


@router.get("/upcoming", response_model=list[NightResponse])
def get_upcoming_nights(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[dict]:
    return list_upcoming_nights(db)


@router.get("/calendar", response_model=list[CalendarNightResponse])
def get_calendar(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[dict]:
    return list_calendar(db)


@router.post("", response_model=NightResponse, status_code=status.HTTP_201_CREATED)
def schedule_night(
    payload: CreateNightRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return create_night(db, current_user.id, payload.title, payload.date)


@router.get("/{night_id}", response_model=NightDetailResponse)
def get_night(
    night_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return get_night_detail(db, night_id)
    except NightNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "NIGHT_NOT_FOUND", exc) from exc


@router.post("/{night_id}/join", response_model=NightResponse)
def attend_night(
    night_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return join_night(db, night_id, current_user.id)
    except NightNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "NIGHT_NOT_FOUND", exc) from exc


@router.post(
    "/{night_id}/candidates",
    response_model=NightCandidateResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_night_candidate(
    night_id: UUID,
    payload: AddCandidateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return add_candidate(db, night_id, current_user.id, payload.movie_id)
    except NightNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "NIGHT_NOT_FOUND", exc) from exc
    except MovieNotFoundError as exc:
        raise api_error(status.HTTP_400_BAD_REQUEST, "MOVIE_NOT_FOUND", exc) from exc
    except CandidateAlreadyExistsError as exc:
        raise api_error(status.HTTP_409_CONFLICT, "CANDIDATE_EXISTS", exc) from exc
    except SpinDeclinedError as exc:
        raise api_error(status.HTTP_409_CONFLICT, exc.code, exc) from exc


@router.post("/{night_id}/status", response_model=NightResponse)
def change_status(
    night_id: UUID,
    payload: UpdateStatusRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return update_status(db, night_id, current_user.id, payload.status)
    except NightNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "NIGHT_NOT_FOUND", exc) from exc
    except InvalidStatusTransitionError as exc:
        raise api_error(status.HTTP_409_CONFLICT, "INVALID_STATUS_TRANSITION", exc) from exc
    except NoPickError as exc:
        raise api_error(status.HTTP_409_CONFLICT, "NO_PICK", exc) from exc
    except DuplicateWatchedEntryError as exc:
        raise api_error(status.HTTP_409_CONFLICT, "ALREADY_WATCHED", exc) from exc


@router.post("/{night_id}/spin", response_model=SpinResponse)
def spin_wheel(
    night_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    selector: RouletteSelector = Depends(get_roulette_selector),
) -> dict:
    try:
        return spin(db, night_id, current_user.id, selector)
    except NightNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "NIGHT_NOT_FOUND", exc) from exc
    except SpinDeclinedError as exc:
        raise api_error(status.HTTP_409_CONFLICT, exc.code, exc) from exc


@router.post("/{night_id}/spin/settle", response_model=NightResponse)
def settle_wheel(
    night_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return settle_spin(db, night_id, current_user.id)
    except NightNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "NIGHT_NOT_FOUND", exc) from exc
    except NotSpinnerError as exc:
        raise api_error(status.HTTP_403_FORBIDDEN, "NOT_SPINNER", exc) from exc
    except NoPendingSpinError as exc:
        raise api_error(status.HTTP_409_CONFLICT, "NO_PENDING_SPIN", exc) from exc
    except SpinDeclinedError as exc:
        raise api_error(status.HTTP_409_CONFLICT, exc.code, exc) from exc


@router.post("/{night_id}/spin/cancel", response_model=NightResponse)
def cancel_wheel(
    night_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return cancel_spin(db, night_id, current_user.id)
    except NightNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "NIGHT_NOT_FOUND", exc) from exc
    except NotSpinnerError as exc:
        raise api_error(status.HTTP_403_FORBIDDEN, "NOT_SPINNER", exc) from exc
    except NoPendingSpinError as exc:
        raise api_error(status.HTTP_409_CONFLICT, "NO_PENDING_SPIN", exc) from exc


@router.post("/{night_id}/complete", response_model=CompleteNightResponse)
def finish_night(
    night_id: UUID,
    payload: CompleteNightRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    try:
        return complete_night(db, night_id, current_user.id, payload.score, payload.note)
    except NightNotFoundError as exc:
        raise api_error(status.HTTP_404_NOT_FOUND, "NIGHT_NOT_FOUND", exc) from exc
    except InvalidStatusTransitionError as exc:
        raise api_error(status.HTTP_409_CONFLICT, "INVALID_STATUS_TRANSITION", exc) from exc
    except NoPickError as exc:
        raise api_error(status.HTTP_409_CONFLICT, "NO_PICK", exc) from exc
    except DuplicateWatchedEntryError as exc:
        raise api_error(status.HTTP_409_CONFLICT, "ALREADY_WATCHED", exc) from exc
    except InvalidRatingError as exc:
        raise api_error(status.HTTP_400_BAD_REQUEST, "INVALID_RATING", exc) from exc
