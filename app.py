"""
HTTP transport for the inference channel.

Run with:
    $ HARUPAN_CONFIG=config.yml uvicorn app:app --host 0.0.0.0 --port 8000
"""

import base64
import binascii
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, File, Form, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from harupan.bridge import (
    BAD_ARGS,
    DEFAULT_IMGSZ,
    NOT_IMPLEMENTED,
    ChannelResult,
    InferenceChannel,
    MethodCall,
)
from harupan.config import load_config, with_defaults
from harupan.general import determine_device
from harupan.inference import ModelProvider
from harupan.utils import get_logger, setup_logging

logger = get_logger("harupan.app")

STATUS_CODES = {
    BAD_ARGS: 400,
    NOT_IMPLEMENTED: 404,
}


class LoadModelRequest(BaseModel):
    assetPath: str = ""


class ChannelRequest(BaseModel):
    method: str
    arguments: Dict[str, Any] = {}


def to_response(result: ChannelResult) -> JSONResponse:
    if result.success:
        return JSONResponse(result.to_dict())
    return JSONResponse(result.to_dict(), status_code=STATUS_CODES.get(result.code, 422))


def decode_arguments(arguments: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Replace the base64 ``imageBytes`` argument with raw bytes, None if invalid."""
    decoded = dict(arguments)
    image_b64 = decoded.get("imageBytes")
    if isinstance(image_b64, str):
        try:
            decoded["imageBytes"] = base64.b64decode(image_b64, validate=True)
        except (binascii.Error, ValueError):
            return None
    return decoded


def create_app(config: Optional[dict] = None) -> FastAPI:
    config = with_defaults(config or {})
    provider = ModelProvider(
        config["assets_dir"], config["files_dir"], device=determine_device(config["device"])
    )
    channel = InferenceChannel(provider, default_imgsz=config.get("imgsz", DEFAULT_IMGSZ))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        if config.get("model"):
            result = channel.invoke("loadModel", assetPath=config["model"])
            if not result.success:
                raise RuntimeError(f"Failed to load model: {config['model']}")
            logger.info("Model %s loaded at startup", config["model"])
        yield
        # Shutdown
        provider.close()
        logger.info("Model cleanup completed.")

    app = FastAPI(title="Harupan Inference API", version="0.1.0", lifespan=lifespan)
    app.state.channel = channel
    app.state.config = config

    @app.get("/health")
    async def health_check():
        model_loaded = channel.active_handle is not None and not channel.active_handle.closed
        return {
            "status": "healthy" if model_loaded else "unhealthy",
            "model_loaded": model_loaded,
            "asset": channel.active_asset,
            "device": provider.device,
            "imgsz": channel.default_imgsz,
        }

    @app.post("/loadModel")
    def load_model(request: LoadModelRequest):
        return to_response(channel.invoke("loadModel", assetPath=request.assetPath))

    @app.post("/run")
    def run(file: UploadFile = File(...), imgsz: Optional[int] = Form(None)):
        contents = file.file.read()
        return to_response(channel.invoke("run", imageBytes=contents, imgsz=imgsz))

    @app.post("/channel")
    def invoke(request: ChannelRequest):
        arguments = decode_arguments(request.arguments)
        if arguments is None:
            return to_response(ChannelResult.error(BAD_ARGS, "imageBytes is not valid base64"))
        return to_response(channel.handle(MethodCall(request.method, arguments)))

    return app


def build_app_from_env() -> FastAPI:
    config = load_config(os.environ.get("HARUPAN_CONFIG"))
    setup_logging(enabled=True, log_level=with_defaults(config)["log_level"])
    return create_app(config)


app = build_app_from_env()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
