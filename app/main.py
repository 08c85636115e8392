# app/main.py
import logging
import os
from typing import Any

from fastapi import FastAPI, File, UploadFile, HTTPException, Header, Depends
from fastapi.responses import Response
from starlette.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from dicomecg.ecg import DicomEcg, __version__
from dicomecg.exceptions import ECGError, ECGReadFileError

logger = logging.getLogger(__name__)

app = FastAPI(title="DICOM ECG Renderer", version=__version__)

# Allow CORS for all origins (optional)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def verify_api_key(x_api_key: str | None = Header(None, alias="X-API-Key")):
    expected_api_key = os.getenv("API_KEY", "supersecret")
    if x_api_key != expected_api_key:
        raise HTTPException(status_code=401, detail="Invalid API Key")

@app.get("/health")
def health():
    return {"status": "ok"}

class InfoItem(BaseModel):
    key: str
    value: Any
    unit: str | None = None

class RenderResponse(BaseModel):
    info: list[InfoItem]
    svg: str

def _render(content: bytes, speed, amplitude, apply_low_pass_filter):
    try:
        ecg = DicomEcg(content)
        return ecg.render(
            speed=speed,
            amplitude=amplitude,
            apply_low_pass_filter=apply_low_pass_filter,
        )
    except ECGReadFileError as e:
        raise HTTPException(status_code=400, detail=f"Failed to read DICOM: {e}")
    except ECGError as e:
        logger.info("Cannot render upload: %s", e)
        raise HTTPException(status_code=400, detail=str(e))

@app.post("/render", response_model=RenderResponse, dependencies=[Depends(verify_api_key)])
async def render(
    file: UploadFile = File(...),
    speed: float | None = None,
    amplitude: float | None = None,
    apply_low_pass_filter: bool = False,
):
    content = await file.read()
    result = _render(content, speed, amplitude, apply_low_pass_filter)
    return RenderResponse(
        info=[InfoItem(**entry.to_dict()) for entry in result.info],
        svg=result.svg,
    )

@app.post("/render.svg", dependencies=[Depends(verify_api_key)])
async def render_svg(
    file: UploadFile = File(...),
    speed: float | None = None,
    amplitude: float | None = None,
    apply_low_pass_filter: bool = False,
):
    content = await file.read()
    result = _render(content, speed, amplitude, apply_low_pass_filter)
    return Response(content=result.svg, media_type="image/svg+xml")
