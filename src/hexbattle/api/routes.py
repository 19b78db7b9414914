"""HTTP routes for the hexbattle API."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from hexbattle import savegame
from hexbattle.api.runtime import ApiState
from hexbattle.domain.actions import Action
from hexbattle.repository import BattleID, BattleRecord

router = APIRouter()


def get_state(request: Request) -> ApiState:
    state = getattr(request.app.state, "api_state", None)
    if state is None:  # pragma: no cover - FastAPI should always initialise state
        raise RuntimeError("API state not initialised")
    return state


ApiStateDep = Annotated[ApiState, Depends(get_state)]


class PositionModel(BaseModel):
    row: int
    column: int


class BattleSummary(BaseModel):
    id: int
    name: str
    created_at: datetime
    phase: str
    round: int
    seed: int
    selected_id: int | None
    winner: str | None
    action_count: int


class StackSummary(BaseModel):
    id: int
    type: str
    copied_type: str | None
    count: int
    last_health: float
    initial_count: int
    side: str
    position: PositionModel | None
    arrows_left: int | None
    effects: list[dict[str, object]]


class SideDetail(BaseModel):
    hero: str
    controller: str
    spells: list[str]
    skills: dict[str, int]
    army: list[StackSummary]


class BattleDetail(BattleSummary):
    sides: dict[str, SideDetail]
    spell: str | None
    attack_type: str | None
    terrain: list[dict[str, object]]


class CreateBattleRequest(BaseModel):
    name: str = Field(default="battle", min_length=1)
    seed: int | None = None


class ActionRequest(BaseModel):
    action: Action


class ActionResponse(BaseModel):
    accepted: bool
    results: list[dict[str, object]]
    battle: BattleDetail


def _load(state: ApiState, battle_id: int) -> BattleRecord:
    try:
        return state.battles.get_battle(BattleID(battle_id))
    except FileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="battle not found") from exc


@router.get("/health")
async def health(state: ApiStateDep) -> dict[str, object]:
    return {
        "status": "ok",
        "default_seed": state.settings.default_seed,
        "max_chasing_activations": state.rules.chase.max_chasing_activations,
    }


@router.get("/battles", response_model=list[BattleSummary])
async def list_battles(state: ApiStateDep) -> list[BattleSummary]:
    records = state.battles.list_battles()
    return [BattleSummary.model_validate(state.battles.to_summary_dict(r)) for r in records]


@router.post(
    "/battles",
    response_model=BattleDetail,
    status_code=status.HTTP_201_CREATED,
)
async def create_battle(request: CreateBattleRequest, state: ApiStateDep) -> BattleDetail:
    seed = request.seed if request.seed is not None else state.settings.default_seed
    record = state.battles.create_battle(request.name, seed=seed)
    return BattleDetail.model_validate(state.battles.to_detail_dict(record))


@router.get("/battles/{battle_id}", response_model=BattleDetail)
async def get_battle(battle_id: int, state: ApiStateDep) -> BattleDetail:
    record = _load(state, battle_id)
    return BattleDetail.model_validate(state.battles.to_detail_dict(record))


@router.post("/battles/{battle_id}/actions", response_model=ActionResponse)
async def submit_action(
    battle_id: int,
    request: ActionRequest,
    state: ApiStateDep,
) -> ActionResponse:
    outcome = await state.actions.submit(BattleID(battle_id), request.action)
    if outcome is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="battle not found")
    return ActionResponse(
        accepted=outcome.accepted,
        results=state.battles.results_payload(outcome.results),
        battle=BattleDetail.model_validate(state.battles.to_detail_dict(outcome.record)),
    )


@router.get("/battles/{battle_id}/queue", response_model=list[StackSummary])
async def get_queue(battle_id: int, state: ApiStateDep) -> list[StackSummary]:
    record = _load(state, battle_id)
    return [StackSummary.model_validate(stack) for stack in state.battles.queue(record)]


@router.get("/battles/{battle_id}/legal-targets", response_model=list[PositionModel])
async def get_legal_targets(battle_id: int, state: ApiStateDep) -> list[PositionModel]:
    record = _load(state, battle_id)
    return [PositionModel.model_validate(cell) for cell in state.battles.legal_targets(record)]


@router.get("/battles/{battle_id}/casualties")
async def get_casualties(battle_id: int, state: ApiStateDep) -> dict[str, dict[str, int]]:
    record = _load(state, battle_id)
    report = state.battles.casualties(record)
    if report is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="battle is still running")
    return {
        str(side): {str(unit_type): lost for unit_type, lost in losses.items()}
        for side, losses in report.items()
    }


@router.get("/battles/{battle_id}/export")
async def export_battle(battle_id: int, state: ApiStateDep) -> Response:
    try:
        manifest = state.battles.export_battle(BattleID(battle_id))
    except FileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="battle not found") from exc
    return Response(
        content=savegame.manifest_archive(manifest),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="battle_{battle_id}.hexbattle"'},
    )
