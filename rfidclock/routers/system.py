# rfidclock/routers/system.py

from datetime import date, datetime, time
from typing import Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, Field

from ..dependencies import get_services

router = APIRouter(prefix="/system/config", tags=["system"])


class ConfigUpdate(BaseModel):
    work_start: Optional[time] = None
    work_end: Optional[time] = None
    late_tolerance_minutes: Optional[int] = Field(default=None, ge=0)
    early_entry_minutes: Optional[int] = Field(default=None, ge=0)
    enforce_entry_window: Optional[bool] = None
    simulation_mode: Optional[bool] = None
    simulated_date: Optional[date] = None
    simulated_datetime: Optional[datetime] = None


class SimulationRequest(BaseModel):
    simulated_date: Optional[date] = None
    simulated_datetime: Optional[datetime] = None


@router.get("")
def get_config(services=Depends(get_services)):
    return services.configuration.current()


@router.put("")
def update_config(payload: ConfigUpdate, services=Depends(get_services)):
    """Only the fields present in the body are changed."""
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("simulated_datetime") is not None:
        changes["simulated_datetime"] = services.clock.localize(changes["simulated_datetime"])
    return services.configuration.update(**changes)


@router.post("/simulation/enable")
def enable_simulation(payload: Optional[SimulationRequest] = Body(default=None), services=Depends(get_services)):
    payload = payload or SimulationRequest()
    simulated_datetime = payload.simulated_datetime
    if simulated_datetime is not None:
        simulated_datetime = services.clock.localize(simulated_datetime)
    return services.configuration.enable_simulation(payload.simulated_date, simulated_datetime)


@router.post("/simulation/disable")
def disable_simulation(services=Depends(get_services)):
    return services.configuration.disable_simulation()
