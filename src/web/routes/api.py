from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from models.prediction import DetectionStatus, ModelState
from pipeline.detection_loop import DetectionLoop
from runtime.context import DetectionContext
from ..api_models import LabelsResponse, PredictionResponse, StatusResponse

router = APIRouter()


def _ctx(request: Request) -> DetectionContext:
    return request.app.state.ctx


def _loop(request: Request) -> DetectionLoop:
    return request.app.state.loop


def _to_response(status: DetectionStatus, loop: DetectionLoop) -> StatusResponse:
    prediction = None
    if status.prediction is not None:
        prediction = PredictionResponse(**status.prediction.to_dict())
    return StatusResponse(
        model_state=status.model_state.value,
        demo_mode=status.is_simulated,
        detecting=status.detecting,
        prediction=prediction,
        confidence=status.confidence,
        error=status.error,
        loop=loop.stats.to_dict(),
    )


@router.get("/status", response_model=StatusResponse)
def status(request: Request):
    return _to_response(_ctx(request).snapshot(), _loop(request))


@router.get("/labels", response_model=LabelsResponse)
def labels(request: Request):
    return LabelsResponse(labels=list(_ctx(request).labels))


@router.post("/detection/start", response_model=StatusResponse)
def start_detection(request: Request):
    ctx = _ctx(request)
    if ctx.model_state is ModelState.LOADING:
        raise HTTPException(status_code=409, detail="Model is still loading")
    _loop(request).start()
    logging.info("Detection started via API")
    return _to_response(ctx.snapshot(), _loop(request))


@router.post("/detection/stop", response_model=StatusResponse)
def stop_detection(request: Request):
    _loop(request).stop()
    return _to_response(_ctx(request).snapshot(), _loop(request))


@router.post("/detection/toggle", response_model=StatusResponse)
def toggle_detection(request: Request):
    ctx = _ctx(request)
    loop = _loop(request)
    if not ctx.detecting and ctx.model_state is ModelState.LOADING:
        raise HTTPException(status_code=409, detail="Model is still loading")
    loop.toggle()
    return _to_response(ctx.snapshot(), loop)
