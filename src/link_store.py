"""
Load and save the friend links dataset.

The file is rewritten only when its serialized form changes, so a pass that
changes nothing leaves the file (and its modification time) alone.
"""

import json
from pathlib import Path

from logging_config import get_logger
from models import LinkGroup, LinksDocument

logger = get_logger(__name__)


class MissingGroupError(LookupError):
    """A group the checker depends on is not present in the dataset."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing link group(s): {', '.join(missing)}")


def serialize(document: LinksDocument) -> str:
    """JSON text for ``document``: 2-space indent, unicode kept, trailing newline."""
    data = document.model_dump(mode="json", by_alias=True, exclude_unset=True)
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def require_groups(document: LinksDocument, active_name: str, inactive_name: str) -> tuple[LinkGroup, LinkGroup]:
    """
    Look up the active and inactive groups.

    Raises:
        MissingGroupError: If either group is absent
    """
    active = document.group(active_name)
    inactive = document.group(inactive_name)
    missing = [name for name, group in ((active_name, active), (inactive_name, inactive)) if group is None]
    if missing:
        raise MissingGroupError(missing)
    return active, inactive


class LinkStore:
    """File-backed links.json"""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._raw: str | None = None

    def load(self) -> LinksDocument:
        """
        Read and validate the dataset.

        JSON and validation errors are not caught here; a corrupt file should stop the run.
        """
        self._raw = self.path.read_text(encoding="utf-8")
        document = LinksDocument.model_validate(json.loads(self._raw))
        logger.info(
            "Loaded links dataset",
            extra={"path": self.path, "groups": len(document.friends)},
        )
        return document

    def has_changes(self, document: LinksDocument) -> bool:
        return serialize(document) != self._raw

    def save(self, document: LinksDocument) -> bool:
        """
        Write ``document`` if it differs from what was loaded.

        Returns:
            True if the file was written
        """
        serialised = serialize(document)
        if serialised == self._raw:
            logger.info("Links dataset unchanged, nothing to write", extra={"path": self.path})
            return False

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(serialised, encoding="utf-8")
        self._raw = serialised
        logger.info("Links dataset updated", extra={"path": self.path})
        return True
