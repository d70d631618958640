import os
import json
import fcntl
import logging
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from models.document import StoreState
from store.migrations import CURRENT_VERSION, migrate

logger = logging.getLogger("store.persistence")

STORAGE_NAME = "document-store"


def default_snapshot_path() -> Path:
	state_dir = Path(os.getenv("STATE_DIR", "state")).resolve()
	return state_dir / f"{STORAGE_NAME}.json"


class SnapshotFile:
	"""One JSON snapshot of the whole store, replaced atomically on every save."""

	def __init__(self, path: Optional[Path] = None):
		self.path = Path(path) if path is not None else default_snapshot_path()

	def load(self) -> Optional[StoreState]:
		if not self.path.exists():
			return None
		try:
			with open(self.path, "r", encoding="utf-8") as f:
				fcntl.flock(f.fileno(), fcntl.LOCK_SH)
				raw = json.load(f)
				fcntl.flock(f.fileno(), fcntl.LOCK_UN)
			return StoreState.model_validate(migrate(raw))
		except (json.JSONDecodeError, ValidationError, ValueError, TypeError, AttributeError):
			aside = self.path.with_name(f"{STORAGE_NAME}.corrupt.json")
			logger.error("snapshot_unreadable", exc_info=True, extra={"path": str(self.path), "moved_to": str(aside)})
			self.path.replace(aside)
			return None

	def save(self, state: StoreState) -> None:
		payload = {
			"state": state.model_dump(by_alias=True, mode="json"),
			"version": CURRENT_VERSION,
		}
		self.path.parent.mkdir(parents=True, exist_ok=True)
		with tempfile.NamedTemporaryFile("w", delete=False, dir=str(self.path.parent), encoding="utf-8", suffix=".tmp") as tf:
			json.dump(payload, tf, ensure_ascii=False)
			tmpname = tf.name
		Path(tmpname).replace(self.path)
