"""Planet Fitness and Apple Fitness integration routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..schemas.fitness import (
    AppleFitnessOut,
    AppleFitnessRequest,
    PlanetFitnessOut,
    PlanetFitnessRequest,
)
from ..services.fitness import get_fitness_service
from .dependencies import get_current_user

router = APIRouter(prefix="/api", tags=["integrations"])


@router.get("/pf-integration", response_model=PlanetFitnessOut)
def read_pf_integration(*, current_user=Depends(get_current_user)) -> PlanetFitnessOut:
    integration = get_fitness_service().get_pf_integration(current_user.id)
    return PlanetFitnessOut.from_integration(integration)


@router.post("/pf-integration", response_model=PlanetFitnessOut, status_code=status.HTTP_201_CREATED)
def connect_pf_integration(
    payload: PlanetFitnessRequest,
    *,
    current_user=Depends(get_current_user),
) -> PlanetFitnessOut:
    integration = get_fitness_service().connect_pf(current_user.id, payload.to_link())
    return PlanetFitnessOut.from_integration(integration)


@router.patch("/pf-integration/checkin", response_model=PlanetFitnessOut)
def check_in(*, current_user=Depends(get_current_user)) -> PlanetFitnessOut:
    integration = get_fitness_service().pf_check_in(current_user.id)
    if integration is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Planet Fitness account not connected")
    return PlanetFitnessOut.from_integration(integration)


@router.get("/apple-integration", response_model=AppleFitnessOut)
def read_apple_integration(*, current_user=Depends(get_current_user)) -> AppleFitnessOut:
    integration = get_fitness_service().get_apple_integration(current_user.id)
    return AppleFitnessOut.from_integration(integration)


@router.post("/apple-integration", response_model=AppleFitnessOut, status_code=status.HTTP_201_CREATED)
def connect_apple_integration(
    payload: AppleFitnessRequest,
    *,
    current_user=Depends(get_current_user),
) -> AppleFitnessOut:
    integration = get_fitness_service().connect_apple(current_user.id, payload.is_connected)
    return AppleFitnessOut.from_integration(integration)
