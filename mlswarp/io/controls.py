from __future__ import annotations
import json
from pathlib import Path
from typing import List, Literal, Optional, Tuple
import numpy as np
import yaml
from pydantic import BaseModel, Field, model_validator

class ControlPoints(BaseModel):
    """Correspondences src[i] -> dst[i], in pixel coordinates."""
    src: List[Tuple[float, float]]
    dst: List[Tuple[float, float]]

    @model_validator(mode="after")
    def _same_length(self):
        if len(self.src) != len(self.dst):
            raise ValueError(f"got {len(self.src)} src control points but {len(self.dst)} dst ones")
        if not self.src:
            raise ValueError("at least one control point is required")
        return self

    def as_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        return np.asarray(self.src, dtype=np.float32), np.asarray(self.dst, dtype=np.float32)

class WarpJob(BaseModel):
    controls: ControlPoints
    kind: Literal["affine", "similarity", "rigid"] = "rigid"
    subresolution: int = Field(1, ge=1)   # 1 = dense
    workers: Optional[int] = Field(None, ge=1)

def load_job(path: str|Path) -> WarpJob:
    path = Path(path)
    text = path.read_text()
    cfg = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    if not isinstance(cfg, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    if "controls" not in cfg and "src" in cfg:
        # bare control point file
        cfg = {"controls": {"src": cfg.pop("src"), "dst": cfg.pop("dst", [])}, **cfg}
    return WarpJob.model_validate(cfg)

def save_job(path: str|Path, job: WarpJob):
    Path(path).write_text(job.model_dump_json(indent=2))
