# inference/model/provider.py

"""
Materializes bundled model assets into local storage and opens sessions.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional, Union

from harupan.errors import LoadError
from harupan.utils import get_logger

from .wrapper import SessionHandle

logger = get_logger(__name__)

PathLike = Union[str, os.PathLike]


class ModelProvider:
    """
    Copies model assets from ``assets_dir`` into ``files_dir`` once and keeps
    one open ``SessionHandle`` per asset.

    ``ensure_loaded`` is idempotent: the file is only copied when the local
    copy does not exist yet, and an open handle for the same asset is
    returned as is. The provider owns the handles it creates; ``release`` and
    ``close`` close them.

    Example:
        >>> provider = ModelProvider("./assets", "./files")
        >>> handle = provider.ensure_loaded("models/detector.onnx")
    """

    def __init__(self, assets_dir: PathLike, files_dir: PathLike, device: str = "cpu"):
        self.assets_dir = Path(assets_dir)
        self.files_dir = Path(files_dir)
        self.device = device
        self._handles: Dict[str, SessionHandle] = {}
        self._lock = threading.RLock()

    def materialize(self, asset_id: str) -> Path:
        """Return the local path of ``asset_id``, copying it on first use.

        Raises:
            LoadError: if ``asset_id`` is empty or the asset does not exist.
        """
        if not asset_id:
            raise LoadError("Empty asset path")

        target = self.files_dir / Path(asset_id).name
        with self._lock:
            if target.exists():
                logger.debug("Asset %s already materialized at %s", asset_id, target)
                return target

            source = self.assets_dir / asset_id
            if not source.is_file():
                raise LoadError(f"Model asset not found: {source}")

            self.files_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.files_dir, suffix=".part")
            try:
                with os.fdopen(fd, "wb") as output, open(source, "rb") as input_:
                    shutil.copyfileobj(input_, output)
                os.replace(tmp_name, target)
            except OSError as exc:
                if os.path.exists(tmp_name):
                    os.remove(tmp_name)
                raise LoadError(f"Failed to copy asset {source}: {exc}") from exc

            logger.info("Copied model asset %s to %s", source, target)
            return target

    def ensure_loaded(self, asset_id: str) -> SessionHandle:
        """Materialize ``asset_id`` and return an open session handle for it.

        Raises:
            LoadError: on a missing asset or a model the runtime cannot open.
        """
        with self._lock:
            handle = self._handles.get(asset_id)
            if handle is not None and not handle.closed:
                return handle

            model_path = self.materialize(asset_id)
            handle = SessionHandle(str(model_path), self.device)
            self._handles[asset_id] = handle
            logger.info("Model %s loaded on %s", asset_id, self.device)
            return handle

    def get(self, asset_id: str) -> Optional[SessionHandle]:
        with self._lock:
            handle = self._handles.get(asset_id)
        if handle is None or handle.closed:
            return None
        return handle

    def release(self, asset_id: str) -> None:
        with self._lock:
            handle = self._handles.pop(asset_id, None)
        if handle is not None:
            handle.close()

    def close(self) -> None:
        with self._lock:
            handles, self._handles = list(self._handles.values()), {}
        for handle in handles:
            handle.close()
        logger.info("ModelProvider closed %d session(s)", len(handles))
