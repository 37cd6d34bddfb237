from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Credit:
    text: str
    image_url: Optional[str] = None
    link: Optional[str] = None


DEFAULT_CREDIT = Credit("MapQuest, Open Street Map and contributors, CC-BY-SA")
