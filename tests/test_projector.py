"""Tests for sync/projector.py — read-only status projection."""

import pytest

pytestmark = pytest.mark.git


class TestProjection:
    def test_clean(self, clone, make_service):
        body = make_service(clone("local")).status()

        status = body["status"]
        assert body["success"] is True
        assert status["hasChanges"] is False
        assert status["branch"] == "main"
        assert status["upload"]["items"] == []
        assert status["download"]["items"] == []
        assert status["lastCommit"]["message"] == "Initial library"

    def test_upload_and_download(self, clone, git, add_asset, read_doc, write_doc, make_service):
        local = clone("local")
        other = clone("other")
        add_asset(other, "remote.jpg")
        doc = read_doc(other)
        doc["images"]["remote.jpg"] = {"tags": ["beach"]}
        write_doc(other, doc)
        git(other, "add", "-A")
        git(other, "commit", "-q", "-m", "remote asset")
        git(other, "push", "-q", "origin", "HEAD:main")

        add_asset(local, "mine.jpg")

        status = make_service(local).status()["status"]

        assert status["hasChanges"] is True
        assert status["commitsBehind"] == 1
        assert status["upload"]["items"] == ["added: mine.jpg"]
        assert status["download"]["newAssets"] == 1
        assert status["download"]["items"] == ["added: remote.jpg"]

    def test_local_commits_count_as_upload(self, clone, git, add_asset, make_service):
        local = clone("local")
        add_asset(local, "a.jpg")
        git(local, "add", "-A")
        git(local, "commit", "-q", "-m", "a")

        status = make_service(local).status()["status"]

        assert status["commitsAhead"] == 1
        assert status["upload"]["items"] == ["added: a.jpg"]

    def test_does_not_mutate(self, clone, git, add_asset, make_service):
        local = clone("local")
        other = clone("other")
        (other / "r.txt").write_text("r")
        git(other, "add", "-A")
        git(other, "commit", "-q", "-m", "r")
        git(other, "push", "-q", "origin", "HEAD:main")
        add_asset(local, "a.jpg")
        head = git(local, "rev-parse", "HEAD")
        before = git(local, "status", "--porcelain")

        service = make_service(local)
        service.status()

        assert git(local, "rev-parse", "HEAD") == head
        assert git(local, "status", "--porcelain") == before
        assert service.logs()["logs"] == []

    def test_unreadable_metadata(self, clone, make_service):
        local = clone("local")
        (local / "metadata.json").write_text("<<<<<<< HEAD\n")

        status = make_service(local).status()["status"]

        assert status["hasChanges"] is True
        assert status["upload"]["items"] == []
