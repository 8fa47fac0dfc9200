"""Dashboard routes: live status, last heard list, statistics and station settings."""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from ..config import (
    ACTIVITY_DEFAULT_HOURS,
    ACTIVITY_MAX_HOURS,
    HALL_OF_FAME_DEFAULT_HOURS,
    HALL_OF_FAME_MAX_LIMIT,
    HALL_OF_FAME_MIN_DURATION,
    HEATMAP_DEFAULT_DAYS,
    HEATMAP_MAX_DAYS,
    LASTHEARD_DEFAULT_LIMIT,
    LASTHEARD_MAX_LIMIT,
    STATION_INI,
)
from ..station import read_local_config
from ..status_store import (
    get_activity,
    get_activity_by_mode,
    get_avg_duration_by_mode,
    get_hall_of_fame,
    get_heatmap,
    get_lastheard,
    get_reflectors,
    get_status,
    get_top_callsigns,
    get_top_callsigns_by_duration,
)

router = APIRouter(prefix="/api", tags=["status"])


class StatusResponse(BaseModel):
    """What is on air right now (or what was heard last)."""

    mode: Optional[str] = None
    callsign: str = ''
    dgid: Optional[int] = None
    slot: Optional[int] = None
    source: Optional[str] = None
    active: bool = False
    ber: Optional[float] = None
    duration: Optional[float] = None
    updated_at: Optional[str] = None


class LastHeardEntry(BaseModel):
    callsign: str
    mode: Optional[str] = None
    dgid: Optional[int] = None
    slot: Optional[int] = None
    source: Optional[str] = None
    duration: Optional[float] = None
    ber: Optional[float] = None
    ts: str


class LastHeardResponse(BaseModel):
    entries: list[LastHeardEntry]
    count: int


class ReflectorResponse(BaseModel):
    """Link target per family; '' = unlinked, null = never seen."""

    dstar: Optional[str] = None
    fusion: Optional[str] = None
    dmr: Optional[str] = None
    updated_at: Optional[str] = None


class ActivityBucketModel(BaseModel):
    hour: str
    rf: int
    net: int


class ActivityResponse(BaseModel):
    hours: int
    buckets: list[ActivityBucketModel]


class CallsignCountModel(BaseModel):
    callsign: str
    count: int
    seconds: float


class TopCallsignsResponse(BaseModel):
    hours: int
    callsigns: list[CallsignCountModel]


class ModeActivityModel(BaseModel):
    rf: int
    net: int
    total: int


class ActivityByModeResponse(BaseModel):
    hours: int
    dstar: ModeActivityModel
    ysf: ModeActivityModel
    dmr: ModeActivityModel


class ModeDurationModel(BaseModel):
    mode: str
    avg: float


class AvgDurationResponse(BaseModel):
    modes: list[ModeDurationModel]


class CallsignDurationModel(BaseModel):
    callsign: str
    seconds: float


class TopDurationResponse(BaseModel):
    callsigns: list[CallsignDurationModel]


class HeatmapCellModel(BaseModel):
    weekday: int
    hour: int
    count: int


class HeatmapResponse(BaseModel):
    """Weekday/hour traffic grid; weekday 0 is Sunday, hours are UTC."""

    days: int
    cells: list[HeatmapCellModel]


class HallOfFameEntryModel(BaseModel):
    callsign: str
    qso_count: int
    total_sec: float
    avg_sec: float
    score: float


class HallOfFameResponse(BaseModel):
    hours: int
    min_duration: float
    entries: list[HallOfFameEntryModel]


class LocalConfigResponse(BaseModel):
    """Settings of the station running the gateways."""

    callsign: str = ''
    duplex: bool = False
    rx_frequency: int = 0
    tx_frequency: int = 0
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location: str = ''
    description: str = ''


@router.get("/status", response_model=StatusResponse)
def read_status():
    """Get the live status row.

    Raises:
        HTTPException: 404 when the store holds no status yet
    """
    status = get_status()
    if status is None:
        raise HTTPException(status_code=404, detail="No status recorded yet")
    return status


@router.get("/lastheard", response_model=LastHeardResponse)
def read_lastheard(
    limit: int = Query(LASTHEARD_DEFAULT_LIMIT, ge=1, le=LASTHEARD_MAX_LIMIT),
):
    """Get the most recent finished transmissions, newest first."""
    entries = get_lastheard(limit)
    return {"entries": entries, "count": len(entries)}


@router.get("/reflectors", response_model=ReflectorResponse)
def read_reflectors():
    return get_reflectors()


@router.get("/activity", response_model=ActivityResponse)
def read_activity(
    hours: int = Query(ACTIVITY_DEFAULT_HOURS, ge=1, le=ACTIVITY_MAX_HOURS),
):
    """Get hourly RF and network transmission counts.

    Args:
        hours: Look-back window

    Returns:
        The window and one bucket per hour that had traffic
    """
    return {"hours": hours, "buckets": get_activity(hours)}


@router.get("/top-callsigns", response_model=TopCallsignsResponse)
def read_top_callsigns(
    hours: int = Query(ACTIVITY_DEFAULT_HOURS, ge=1, le=ACTIVITY_MAX_HOURS),
    limit: int = Query(LASTHEARD_DEFAULT_LIMIT, ge=1, le=LASTHEARD_MAX_LIMIT),
):
    """Get the most active callsigns of the window."""
    return {"hours": hours, "callsigns": get_top_callsigns(hours, limit)}


@router.get("/activity-by-mode", response_model=ActivityByModeResponse)
def read_activity_by_mode(
    hours: int = Query(ACTIVITY_DEFAULT_HOURS, ge=1, le=ACTIVITY_MAX_HOURS),
):
    """Get RF and network transmission counts per protocol family."""
    return {"hours": hours, **get_activity_by_mode(hours)}


@router.get("/avg-duration", response_model=AvgDurationResponse)
def read_avg_duration():
    return {"modes": get_avg_duration_by_mode()}


@router.get("/top-duration", response_model=TopDurationResponse)
def read_top_duration(
    limit: int = Query(LASTHEARD_DEFAULT_LIMIT, ge=1, le=LASTHEARD_MAX_LIMIT),
):
    """Get the callsigns with the most total airtime."""
    return {"callsigns": get_top_callsigns_by_duration(limit)}


@router.get("/heatmap", response_model=HeatmapResponse)
def read_heatmap(
    days: int = Query(HEATMAP_DEFAULT_DAYS, ge=1, le=HEATMAP_MAX_DAYS),
):
    return {"days": days, "cells": get_heatmap(days)}


@router.get("/hall-of-fame", response_model=HallOfFameResponse)
def read_hall_of_fame(
    hours: int = Query(HALL_OF_FAME_DEFAULT_HOURS, ge=1),
    limit: int = Query(10, ge=1, le=HALL_OF_FAME_MAX_LIMIT),
):
    """Rank callsigns by transmission count and airtime.

    Args:
        hours: Look-back window
        limit: Maximum number of entries

    Returns:
        The window, the shortest counted transmission and the ranking
    """
    entries = get_hall_of_fame(hours, limit, HALL_OF_FAME_MIN_DURATION)
    return {"hours": hours, "min_duration": HALL_OF_FAME_MIN_DURATION, "entries": entries}


@router.get("/localconfig", response_model=LocalConfigResponse)
def read_localconfig():
    """Get the station settings from the modem host INI file.

    The file is read on every request; a missing file yields empty settings.
    """
    return asdict(read_local_config(STATION_INI))
