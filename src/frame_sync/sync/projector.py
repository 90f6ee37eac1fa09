"""Sync Status Projector: what a sync would do, without doing it.

Upload is everything between the common ancestor and the working tree
(local commits plus uncommitted and untracked files). Download is everything
between the common ancestor and the remote branch. Nothing is committed,
pulled or pushed, and the guard is never taken, so a projection can run
alongside an in-flight transaction.
"""

from __future__ import annotations

import logging

from .inspector import Inspector
from .models import StatusProjection
from .summarizer import summarize_for_download, summarize_for_upload

logger = logging.getLogger(__name__)


class Projector:
    def __init__(self, inspector: Inspector):
        self.inspector = inspector

    def project(self) -> StatusProjection:
        """Fetch, then summarize pending upload and download changes.

        Raises:
            GitCommandError: If the fetch fails.
        """
        inspector = self.inspector
        status = inspector.inspect()
        library_dir = inspector.config.library_dir
        base = inspector.merge_base()

        try:
            current = inspector.working_document()
        except ValueError:
            # Mid-transaction the file may hold conflict markers
            logger.warning("Metadata document unreadable, projecting from HEAD")
            current = inspector.document_at("HEAD" if base else None)

        upload = summarize_for_upload(
            inspector.document_at(base),
            current,
            inspector.pending_changes(base),
            library_dir,
        )

        upstream = inspector.client.upstream
        if status.commits_behind and inspector.upstream_exists():
            download = summarize_for_download(
                inspector.document_at(base),
                inspector.document_at(upstream),
                inspector.changes_between(base, upstream),
                library_dir,
            )
        else:
            download = summarize_for_download({}, {}, [], library_dir)

        has_changes = (
            upload.has_changes
            or download.has_changes
            or status.has_local_changes
            or status.commits_ahead > 0
            or status.commits_behind > 0
        )
        logger.debug(
            "Projected status: ahead=%d behind=%d upload=%d download=%d",
            status.commits_ahead,
            status.commits_behind,
            len(upload.items),
            len(download.items),
        )
        return StatusProjection(
            has_changes=has_changes,
            upload=upload,
            download=download,
            branch=status.current_branch,
            last_commit=status.last_commit,
            has_conflicts=bool(status.conflicted_files),
            conflicted_files=status.conflicted_files,
            commits_ahead=status.commits_ahead,
            commits_behind=status.commits_behind,
        )
