from __future__ import annotations

import os


def env_str(name: str) -> str | None:
    v = os.getenv(name, None)
    if v is None:
        return None
    v = v.strip()
    return v if v else None


def env_float(name: str) -> float | None:
    v = env_str(name)
    if v is None:
        return None
    try:
        return float(v)
    except ValueError as e:
        raise ValueError(f'Invalid float env var {name}={v!r}.') from e


def env_float_list(name: str) -> list[float] | None:
    v = env_str(name)
    if v is None:
        return None
    # Accept "0,0.2,0.4" or "0 0.2 0.4"
    parts = [p.strip() for p in v.replace(' ', ',').split(',') if p.strip()]
    return [float(p) for p in parts]
