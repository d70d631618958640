"""
Versioned upgrades for persisted snapshots.

A snapshot is ``{"state": {...}, "version": N}``. Each step takes the raw
state dict of version N and returns it shaped as version N + 1. Steps run
once, in order, before the state is validated.
"""
import logging
from typing import Any, Callable, Dict, List, Tuple

logger = logging.getLogger("store.migrations")

CURRENT_VERSION = 2


def _dataset_id_to_dataset_ids(state: Dict[str, Any]) -> Dict[str, Any]:
	"""v0 -> v1: documents carried a single ``datasetId``; membership is now a list."""
	for doc in state.get("documents") or []:
		legacy = doc.pop("datasetId", None)
		ids = list(doc.get("datasetIds") or [])
		if legacy and legacy not in ids:
			ids.append(legacy)
		doc["datasetIds"] = ids
	return state


def _done_to_awaiting_review(state: Dict[str, Any]) -> Dict[str, Any]:
	"""v1 -> v2: the old terminal ``done`` status means the same as ``awaiting_review``."""
	for doc in state.get("documents") or []:
		if doc.get("status") == "done":
			doc["status"] = "awaiting_review"
	return state


MIGRATIONS: List[Tuple[int, Callable[[Dict[str, Any]], Dict[str, Any]]]] = [
	(0, _dataset_id_to_dataset_ids),
	(1, _done_to_awaiting_review),
]


def unwrap(raw: Dict[str, Any]) -> Tuple[Dict[str, Any], int]:
	"""Split a persisted payload into (state, version). Bare states count as version 0."""
	if "state" in raw and isinstance(raw["state"], dict):
		return raw["state"], int(raw.get("version") or 0)
	return raw, 0


def migrate(raw: Dict[str, Any]) -> Dict[str, Any]:
	"""Return the raw state upgraded to ``CURRENT_VERSION``."""
	state, version = unwrap(raw)
	if version > CURRENT_VERSION:
		raise ValueError(f"Snapshot version {version} is newer than supported {CURRENT_VERSION}")
	for from_version, step in MIGRATIONS:
		if version == from_version:
			state = step(state)
			version += 1
			logger.info("snapshot_migrated", extra={"version": version})
	return state
