"""Change Summarizer: turn file statuses and document diffs into readable items.

Assets are identified by file name. The per-asset record collects every fact
about one asset, so an asset that is both renamed and re-tagged yields a
single item carrying both facts, and a VCS-detected rename is one item.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any

from .models import ChangeKind, ChangeSummary, FileChange

ASSETS_KEY = "images"

# Properties that change on every save and carry no meaning for the user
IGNORED_PROPERTIES = frozenset({"tags", "updated"})

NEW = "new"
RENAMED = "renamed"
DELETED = "deleted"
MODIFIED = "modified"

_PRIORITY = {RENAMED: 0, NEW: 1, DELETED: 2, MODIFIED: 3}


@dataclass
class _AssetRecord:
    asset_id: str
    category: str
    old_id: str | None = None
    facts: list[str] = field(default_factory=list)

    def promote(self, category: str) -> None:
        if _PRIORITY[category] < _PRIORITY[self.category]:
            self.category = category

    def item(self) -> str:
        match self.category:
            case "new":
                return f"added: {self.asset_id}"
            case "deleted":
                return f"deleted: {self.asset_id}"
            case "renamed":
                line = f"renamed: {self.old_id} → {self.asset_id}"
                return "; ".join([line, *self.facts])
            case _:
                return f"{self.asset_id}: " + "; ".join(self.facts or ["file changed"])


def _plural(verb: str, values: list[str]) -> str:
    noun = "tag" if len(values) == 1 else "tags"
    return f"{verb} {noun}: {', '.join(values)}"


def diff_asset_entry(old: dict[str, Any], new: dict[str, Any]) -> list[str]:
    """Facts describing how one asset's metadata entry changed.

    Tags are compared as sets; scalar properties are reported by name only.
    """
    old_tags = list(dict.fromkeys(old.get("tags") or []))
    new_tags = list(dict.fromkeys(new.get("tags") or []))
    added = [t for t in new_tags if t not in old_tags]
    removed = [t for t in old_tags if t not in new_tags]

    facts = []
    if added:
        facts.append(_plural("added", added))
    if removed:
        facts.append(_plural("removed", removed))

    changed = []
    for key in [*new, *[k for k in old if k not in new]]:
        if key in IGNORED_PROPERTIES or key in changed:
            continue
        if old.get(key) != new.get(key):
            changed.append(key)
    if changed:
        facts.append(f"updated {', '.join(changed)}")
    return facts


class _Summary:
    def __init__(self, library_dir: str):
        self.library_dir = library_dir
        self.records: dict[str, _AssetRecord] = {}

    def _record(self, asset_id: str, category: str) -> _AssetRecord:
        record = self.records.get(asset_id)
        if record is None:
            record = _AssetRecord(asset_id, category)
            self.records[asset_id] = record
        else:
            record.promote(category)
        return record

    def _asset_id(self, path: str | None) -> str | None:
        if not path:
            return None
        parts = PurePosixPath(path).parts
        if len(parts) < 2 or parts[0] != self.library_dir:
            return None
        return parts[-1]

    def add_files(self, files: list[FileChange]) -> None:
        for change in files:
            asset_id = self._asset_id(change.path)
            if asset_id is None:
                continue
            match change.kind:
                case ChangeKind.ADDED:
                    self._record(asset_id, NEW)
                case ChangeKind.DELETED:
                    self._record(asset_id, DELETED)
                case ChangeKind.RENAMED:
                    old_id = self._asset_id(change.old_path)
                    if old_id is None:
                        self._record(asset_id, NEW)
                    elif old_id == asset_id:
                        self._record(asset_id, MODIFIED)
                    else:
                        self._record(asset_id, RENAMED).old_id = old_id
                case _:
                    self._record(asset_id, MODIFIED).facts.append("file changed")

    def add_document_diff(self, prior: dict[str, Any], current: dict[str, Any]) -> None:
        old_assets = prior.get(ASSETS_KEY) or {}
        new_assets = current.get(ASSETS_KEY) or {}
        renamed_from = {
            r.old_id: r.asset_id
            for r in self.records.values()
            if r.category == RENAMED
        }

        for asset_id, entry in new_assets.items():
            record = self.records.get(asset_id)
            source_id = (
                record.old_id
                if record is not None and record.category == RENAMED
                else asset_id
            )
            if source_id not in old_assets:
                self._record(asset_id, NEW)
                continue
            facts = diff_asset_entry(old_assets[source_id] or {}, entry or {})
            if facts:
                self._record(asset_id, MODIFIED).facts.extend(facts)

        for asset_id in old_assets:
            if asset_id not in new_assets and asset_id not in renamed_from:
                self._record(asset_id, DELETED)

    def document_items(self, prior: dict[str, Any], current: dict[str, Any]) -> list[str]:
        keys = [*current, *[k for k in prior if k not in current]]
        return [
            f"metadata: updated {key}"
            for key in keys
            if key != ASSETS_KEY and prior.get(key) != current.get(key)
        ]

    def build(self, extra_items: list[str]) -> ChangeSummary:
        counts = {NEW: 0, RENAMED: 0, DELETED: 0, MODIFIED: 0}
        items = []
        for asset_id in sorted(self.records):
            record = self.records[asset_id]
            counts[record.category] += 1
            items.append(record.item())
        return ChangeSummary(
            new_assets=counts[NEW],
            modified_assets=counts[MODIFIED],
            deleted_assets=counts[DELETED],
            renamed_assets=counts[RENAMED],
            items=items + extra_items,
        )


def summarize(
    prior_doc: dict[str, Any],
    current_doc: dict[str, Any],
    files: list[FileChange],
    library_dir: str = "library",
) -> ChangeSummary:
    """Summarize the change from *prior_doc* to *current_doc*.

    Args:
        prior_doc: Metadata document before the change.
        current_doc: Metadata document after the change.
        files: File-level changes over the same span.
        library_dir: Directory whose files are assets.

    Returns:
        Counts per category plus one item per affected asset, followed by
        ``metadata: updated <key>`` items for other document keys.
    """
    summary = _Summary(library_dir)
    summary.add_files(files)
    summary.add_document_diff(prior_doc, current_doc)
    return summary.build(summary.document_items(prior_doc, current_doc))


def summarize_for_upload(
    prior_doc: dict[str, Any],
    current_doc: dict[str, Any],
    files: list[FileChange],
    library_dir: str = "library",
) -> ChangeSummary:
    """Local changes that a sync would send to the remote."""
    return summarize(prior_doc, current_doc, files, library_dir)


def summarize_for_download(
    prior_doc: dict[str, Any],
    current_doc: dict[str, Any],
    files: list[FileChange],
    library_dir: str = "library",
) -> ChangeSummary:
    """Remote changes that a sync would bring into the working copy."""
    return summarize(prior_doc, current_doc, files, library_dir)


def build_commit_message(summary: ChangeSummary) -> str:
    """Commit message with a count headline and one indented line per item.

    Example::

        Sync: 2 new, 1 modified

          added: a.jpg
          added: b.jpg
          c.jpg: added tag: sunset
    """
    counts = summary.count_line()
    if counts:
        headline = f"Sync: {counts}"
    elif summary.items:
        headline = "Sync: metadata updated"
    else:
        headline = "Sync: repository files updated"
    if not summary.items:
        return headline
    body = "\n".join(f"  {item}" for item in summary.items)
    return f"{headline}\n\n{body}"
