from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple
import json
import numbers

import yaml

from riemann_gpu.integration.evaluators import HEAVY_TERMS
from riemann_gpu.integration.types import EvaluatorMode, Interval


@dataclass(frozen=True)
class BenchConfig:
    """
    Benchmark configuration.

    Defaults reproduce the reference run: a HEAVY sweep over [1, 20] and a
    POLYNOMIAL accuracy check over [10, 40] with 10000 samples.
    """

    lower: float = 1.0
    upper: float = 20.0
    sizes: Tuple[int, ...] = (100, 1000, 10000, 100000)
    mode: EvaluatorMode = EvaluatorMode.HEAVY

    accuracy_lower: float = 10.0
    accuracy_upper: float = 40.0
    accuracy_n: int = 10000

    # Launch / evaluator controls
    block_size: int = 256
    heavy_terms: int = HEAVY_TERMS
    warmup: bool = True

    @property
    def interval(self) -> Interval:
        return Interval.validated(self.lower, self.upper)

    @property
    def accuracy_interval(self) -> Interval:
        return Interval.validated(self.accuracy_lower, self.accuracy_upper)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["sizes"] = [int(n) for n in self.sizes]
        d["mode"] = self.mode.name.lower()
        return d


def _load_dict(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    else:
        data = json.loads(text)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Bench config {path} must contain a mapping at top level")
    return data


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        key = value.strip().lower()
        if key in {"1", "true", "yes", "on"}:
            return True
        if key in {"0", "false", "no", "off"}:
            return False
        raise ValueError(f"Expected a boolean, got {value!r}")
    return bool(value)


def _as_count(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise ValueError(f"{name} must be an integer, got {value!r}")


def _as_sizes(value: Any) -> Tuple[int, ...]:
    if isinstance(value, (str, bytes)) or not hasattr(value, "__iter__"):
        raise ValueError(f"sizes must be a list of integers, got {value!r}")
    sizes = tuple(_as_count(n, "sizes") for n in value)
    if not sizes:
        raise ValueError("sizes must not be empty")
    return sizes


def _strict_from_mapping(d: Mapping[str, Any]) -> BenchConfig:
    allowed = {f.name for f in fields(BenchConfig)}
    unknown = [k for k in d.keys() if k not in allowed]
    if unknown:
        raise ValueError(f"Unknown bench config keys: {sorted(unknown)}")

    base = BenchConfig()
    return BenchConfig(
        lower=float(d.get("lower", base.lower)),
        upper=float(d.get("upper", base.upper)),
        sizes=_as_sizes(d.get("sizes", base.sizes)),
        mode=EvaluatorMode.parse(d.get("mode", base.mode)),
        accuracy_lower=float(d.get("accuracy_lower", base.accuracy_lower)),
        accuracy_upper=float(d.get("accuracy_upper", base.accuracy_upper)),
        accuracy_n=_as_count(d.get("accuracy_n", base.accuracy_n), "accuracy_n"),
        block_size=int(d.get("block_size", base.block_size)),
        heavy_terms=int(d.get("heavy_terms", base.heavy_terms)),
        warmup=_as_bool(d.get("warmup", base.warmup)),
    )


def load_bench_config(path_str: str) -> BenchConfig:
    """
    Two layouts are accepted:
    1) a standalone file: {lower: ..., sizes: [...], ...}
    2) a shared experiment file with a ``bench`` section: {bench: {...}, ...}
    """
    path = Path(path_str)
    data = _load_dict(path)

    section = data.get("bench", None)
    if isinstance(section, dict):
        raw: Dict[str, Any] = section
    else:
        raw = dict(data)
    return _strict_from_mapping(raw)


def override_bench_config(cfg: BenchConfig, **overrides: Any) -> BenchConfig:
    """Apply the overrides that are not None (CLI flags left unset keep config values)."""
    given = {k: v for k, v in overrides.items() if v is not None}
    if not given:
        return cfg
    merged = cfg.to_dict()
    merged.update(given)
    return _strict_from_mapping(merged)
