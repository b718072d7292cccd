from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from diagramqa.utils.types import SuccessfulLayout

logger = logging.getLogger(__name__)

STORE_VERSION = 1
DEFAULT_MEMORY_PATH = Path(".diagramqa") / "memory_bank.json"


def _prompt_key(prompt: str) -> str:
    return prompt.strip().lower()


class MemoryBank:
    """JSON-backed library of layouts that scored well, used for few-shot prompting.

    The backing file is read once, on first use. Every accepted mutation
    rewrites the whole document. Two instances writing the same path race
    (last writer wins).
    """

    def __init__(
        self,
        path: Path = DEFAULT_MEMORY_PATH,
        max_layouts: int = 100,
        min_score: float = 0.95,
    ) -> None:
        self.path = Path(path)
        self.max_layouts = max(1, int(max_layouts))
        self.min_score = min_score
        self._layouts: List[SuccessfulLayout] = []
        self._loaded = False

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self.path.exists():
            return
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Memory bank %s is unreadable, starting empty: %s", self.path, exc)
            return

        raw_layouts = document.get("layouts") if isinstance(document, dict) else None
        if not isinstance(raw_layouts, list):
            logger.warning("Memory bank %s has no layouts list, starting empty", self.path)
            return

        for item in raw_layouts:
            if not isinstance(item, dict) or not isinstance(item.get("prompt"), str):
                continue
            try:
                self._layouts.append(SuccessfulLayout.from_dict(item))
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping malformed memory bank entry: %s", exc)
        logger.info("Loaded %d layouts from memory bank %s", len(self._layouts), self.path)

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        document = {
            "version": STORE_VERSION,
            "lastUpdated": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "layouts": [layout.to_dict() for layout in self._layouts],
        }
        self.path.write_text(json.dumps(document, indent=2), encoding="utf-8")

    def add_layout(self, layout: SuccessfulLayout) -> bool:
        """Store ``layout`` when it clears the score bar; returns whether it was stored."""
        self._ensure_loaded()
        if layout.score < self.min_score:
            logger.info(
                "Rejected layout for prompt %r: score %.3f below %.2f", layout.prompt, layout.score, self.min_score
            )
            return False

        if not layout.timestamp:
            layout = SuccessfulLayout(
                prompt=layout.prompt,
                json=layout.json,
                score=layout.score,
                timestamp=time.time(),
                category=layout.category,
            )

        key = _prompt_key(layout.prompt)
        for index, existing in enumerate(self._layouts):
            if _prompt_key(existing.prompt) == key:
                self._layouts[index] = layout
                logger.info("Replaced stored layout for prompt %r", layout.prompt)
                break
        else:
            self._layouts.append(layout)

        excess = len(self._layouts) - self.max_layouts
        if excess > 0:
            del self._layouts[:excess]
            logger.info("Evicted %d oldest layout(s) from memory bank", excess)

        self._save()
        return True

    def _most_recent(self, layouts: List[SuccessfulLayout], limit: Optional[int]) -> List[SuccessfulLayout]:
        ordered = [
            layout
            for _, layout in sorted(
                enumerate(layouts), key=lambda item: (item[1].timestamp, item[0]), reverse=True
            )
        ]
        return ordered if limit is None else ordered[: max(0, limit)]

    def get_examples(self, limit: Optional[int] = 5) -> List[SuccessfulLayout]:
        self._ensure_loaded()
        return self._most_recent(list(self._layouts), limit)

    def get_examples_by_category(self, category: str, limit: Optional[int] = 5) -> List[SuccessfulLayout]:
        self._ensure_loaded()
        return self._most_recent([layout for layout in self._layouts if layout.category == category], limit)

    def get_count(self) -> int:
        self._ensure_loaded()
        return len(self._layouts)

    def clear(self) -> None:
        self._ensure_loaded()
        self._layouts = []
        self._save()
        logger.info("Cleared memory bank %s", self.path)

    def generate_few_shot_prompt(self, limit: int = 3) -> str:
        examples = self.get_examples(limit)
        if not examples:
            return ""
        blocks = []
        for index, layout in enumerate(examples, start=1):
            blocks.append(
                f"Example {index}:\n"
                f"Prompt: {layout.prompt}\n"
                f"Diagram:\n```json\n{json.dumps(layout.json, indent=2)}\n```"
            )
        return "Here are examples of well-laid-out diagrams:\n\n" + "\n\n".join(blocks) + "\n"

    def to_dict(self) -> Dict[str, Any]:
        self._ensure_loaded()
        return {"path": str(self.path), "count": len(self._layouts), "max_layouts": self.max_layouts}
