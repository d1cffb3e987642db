"""
JSON file persistence for the complete exchange state.

The engine snapshot and the ticker registry are written together so a
restart restores balances, books (with their resting order ids), price
history and tickers as one unit.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from guild_exchange.core.matching_engine import MatchingEngine
from guild_exchange.core.ticker_registry import TickerRegistry
from guild_exchange.utils.exceptions import CorruptStateException


class StateStore:
    """
    Loads and saves exchange state as a single JSON document.

    Writes go to a temporary file in the same directory and are moved into
    place with os.replace, so a crash mid-write never leaves a truncated file.
    """

    def __init__(self, path):
        """
        Initialize the store.

        Args:
            path: JSON file location; parent directories are created on save
        """
        self.path = Path(path)
        self.logger = logging.getLogger(f"{__name__}.StateStore")

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Read the raw state document.

        Returns:
            The decoded document, or None if no state has been saved yet

        Raises:
            CorruptStateException: If the file is not valid JSON
        """
        if not self.path.exists():
            return None
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptStateException(
                f"Cannot decode state file {self.path}: {e}",
                details={"path": str(self.path)}
            ) from e
        if not isinstance(data, dict) or "engine" not in data:
            raise CorruptStateException(
                f"State file {self.path} has no engine section",
                details={"path": str(self.path)}
            )
        return data

    def restore(self, **engine_kwargs) -> Tuple[MatchingEngine, TickerRegistry]:
        """
        Build the engine and ticker registry from disk, or fresh ones if
        nothing was saved yet.
        """
        data = self.load()
        if data is None:
            self.logger.info(f"No state at {self.path}, starting empty exchange")
            return MatchingEngine(**engine_kwargs), TickerRegistry()

        engine = MatchingEngine.from_dict(data["engine"], **engine_kwargs)
        try:
            registry = TickerRegistry.from_dict(data.get("tickers", {}))
        except Exception as e:
            raise CorruptStateException(f"Corrupt ticker registry: {e}") from e

        self.logger.info(f"Restored exchange state from {self.path}")
        return engine, registry

    def save(self, engine: MatchingEngine, registry: TickerRegistry) -> None:
        """Snapshot the engine (under its lock) and write it with the registry."""
        with engine.lock:
            document = {
                "version": 1,
                "engine": engine.to_dict(),
                "tickers": registry.to_dict(),
            }

            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, sort_keys=True)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise

        self.logger.debug(f"Saved exchange state to {self.path}")
