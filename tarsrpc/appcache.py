"""Cached application state persisted as JSON between runs."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union


def _list_of(value: Any) -> list:
    return list(value) if value else []


@dataclass
class ObjCache:
    """Last known endpoints of one remote object."""

    name: str = ""
    locator: str = ""
    endpoints: list[dict] = field(default_factory=list)
    inactive_endpoints: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "Name": self.name,
            "Locator": self.locator,
            "Endpoints": list(self.endpoints),
            "InactiveEndpoints": list(self.inactive_endpoints),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ObjCache":
        return cls(
            name=data.get("Name") or "",
            locator=data.get("Locator") or "",
            endpoints=_list_of(data.get("Endpoints")),
            inactive_endpoints=_list_of(data.get("InactiveEndpoints")),
        )


@dataclass
class AppCache:
    """Framework version, log level and endpoint caches of the application."""

    tars_version: str = ""
    modify_time: str = ""
    log_level: str = ""
    obj_caches: list[ObjCache] = field(default_factory=list)

    def to_json(self) -> str:
        """Serialise to indented JSON."""
        data = {
            "TarsVersion": self.tars_version,
            "ModifyTime": self.modify_time,
            "LogLevel": self.log_level,
            "ObjCaches": [cache.to_dict() for cache in self.obj_caches],
        }
        return json.dumps(data, indent=4, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> "AppCache":
        """Parse JSON written by to_json; absent fields take their defaults."""
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("application cache must be a JSON object")
        caches = data.get("ObjCaches") or []
        if not isinstance(caches, list):
            raise ValueError("ObjCaches must be a list")
        return cls(
            tars_version=data.get("TarsVersion") or "",
            modify_time=data.get("ModifyTime") or "",
            log_level=data.get("LogLevel") or "",
            obj_caches=[ObjCache.from_dict(c) for c in caches],
        )

    def dump(self, path: Union[str, Path]) -> None:
        """Write the cache to a file."""
        Path(path).write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def load(cls, path: Union[str, Path]) -> "AppCache":
        """Read a cache file written by dump."""
        return cls.from_json(Path(path).read_text(encoding="utf-8"))