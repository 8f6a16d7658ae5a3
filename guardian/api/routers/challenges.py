"""
/users/{owner_id}/challenges: challenge-gated temporary unlocks.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ...api.schemas import (
    AnswerIn,
    AnswerOut,
    ChallengeOut,
    ChallengeRequestIn,
    ChallengeStatsOut,
    DifficultyOut,
)

router = APIRouter(prefix="/users/{owner_id}/challenges", tags=["challenges"])


def _get_registry(request: Request):
    return request.app.state.registry


def _get_services(owner_id: str, request: Request):
    return request.app.state.registry.for_owner(owner_id)


@router.post("", response_model=ChallengeOut, status_code=201)
def request_challenge(body: ChallengeRequestIn, services=Depends(_get_services)):
    """Issue a challenge for a permanently blocked URL."""
    challenge = services.orchestrator.request_challenge(body.url)
    return ChallengeOut.from_challenge(challenge)


@router.post("/{challenge_id}/answer", response_model=AnswerOut)
def submit_answer(
    owner_id: str,
    challenge_id: str,
    body: AnswerIn,
    registry=Depends(_get_registry),
    services=Depends(_get_services),
):
    result = services.orchestrator.submit_answer(challenge_id, body.url, body.answer)
    if result.is_correct:
        registry.record_challenge_success(owner_id)
    return AnswerOut(is_correct=result.is_correct, unlock_until=result.unlock_until)


@router.post("/{challenge_id}/skip")
def skip_challenge(challenge_id: str, services=Depends(_get_services)):
    services.orchestrator.skip(challenge_id)
    return {"status": "skipped"}


@router.get("/recommended", response_model=DifficultyOut)
def recommended_difficulty(services=Depends(_get_services)):
    return DifficultyOut(difficulty=services.challenges.recommended_difficulty().value)


@router.get("/stats", response_model=ChallengeStatsOut)
def challenge_stats(services=Depends(_get_services)):
    engine = services.challenges
    return ChallengeStatsOut.from_stats(engine.stats(), engine.can_attempt())
