from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import json
import logging
import os
from pathlib import Path
import shutil
from typing import AsyncIterator

from questbot.core.models import Document


logger = logging.getLogger(__name__)


class DataStore:
    """
    Whole-file JSON store for the bot document.

    All read-modify-write sequences go through `transaction()`, which holds a
    single asyncio lock so interleaved command handlers cannot drop each
    other's writes.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def load(self) -> Document:
        """
        Read the document. A missing file yields an empty document; an
        unreadable one also yields an empty document, after a copy of the bad
        file is kept next to it.
        """
        if not self.path.exists():
            return Document()
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            self._quarantine(f"{type(e).__name__}: {e}")
            return Document()
        if not isinstance(raw, dict):
            self._quarantine(f"root must be an object, got {type(raw).__name__}")
            return Document()
        return Document.from_dict(raw)

    def save(self, doc: Document) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(doc.to_dict(), f, indent=2, ensure_ascii=False)
        os.replace(tmp, self.path)

    def _quarantine(self, reason: str) -> None:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        backup = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        try:
            shutil.copy2(self.path, backup)
            logger.error("Data file %s is unreadable (%s); copied to %s and starting empty", self.path, reason, backup)
        except OSError as e:
            logger.error("Data file %s is unreadable (%s) and could not be backed up: %s", self.path, reason, e)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Document]:
        """
        Load, yield for mutation, then save. Nothing is written when the
        block raises.
        """
        async with self._lock:
            doc = self.load()
            yield doc
            self.save(doc)

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[Document]:
        async with self._lock:
            yield self.load()
