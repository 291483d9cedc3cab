"""
Unit tests for chain_mirror/watcher.py.

Tests verify:
- Artifacts already on disk are processed when watching starts
- Added and modified files are processed, deleted ones ignored
- A missing artifacts directory is reported and not watched
- One broken artifact does not stop the watch
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, call

import pytest
from watchfiles import Change

from chain_mirror.artifacts import AddressBook, ArtifactResolver, detect_project
from chain_mirror.data_types import BrownieProject
from chain_mirror.watcher import ArtifactWatcher

from conftest import NETWORK_ID, TOKEN_ADDRESS, artifact, write_artifact


def replay(*batches):
    calls = []

    async def watch(path):
        calls.append(path)
        for batch in batches:
            yield batch

    watch.calls = calls
    return watch


@pytest.fixture
def resolver():
    resolver = MagicMock()
    resolver.process = AsyncMock(return_value=None)
    return resolver


class TestArtifactWatcher:
    @pytest.mark.asyncio
    async def test_existing_artifacts_processed(self, truffle_dir, resolver):
        project = detect_project(truffle_dir)
        write_artifact(project.artifacts_dir, artifact("B", ["B"]))
        write_artifact(project.artifacts_dir, artifact("A", ["A"]))

        await ArtifactWatcher(project, resolver, watch=replay()).run()

        assert resolver.process.await_args_list == [call(project, "A.json"), call(project, "B.json")]

    @pytest.mark.asyncio
    async def test_added_and_modified_processed(self, truffle_dir, resolver):
        project = detect_project(truffle_dir)
        artifacts_dir = project.artifacts_dir
        watch = replay({
            (Change.added, str(artifacts_dir / "B.json")),
            (Change.modified, str(artifacts_dir / "A.json")),
            (Change.deleted, str(artifacts_dir / "C.json")),
        })

        await ArtifactWatcher(project, resolver, watch=watch).run()

        assert watch.calls == [artifacts_dir]
        assert resolver.process.await_args_list == [call(project, "A.json"), call(project, "B.json")]

    @pytest.mark.asyncio
    async def test_nested_paths_are_relative(self, truffle_dir, resolver):
        project = detect_project(truffle_dir)
        watch = replay({(Change.added, str(project.artifacts_dir / "lib" / "Math.json"))})

        await ArtifactWatcher(project, resolver, watch=watch).run()

        resolver.process.assert_awaited_once_with(project, "lib/Math.json")

    @pytest.mark.asyncio
    async def test_missing_directory_not_watched(self, tmp_path, resolver):
        watch = replay()

        await ArtifactWatcher(BrownieProject(working_directory=tmp_path), resolver, watch=watch).run()

        assert watch.calls == []
        resolver.process.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_broken_artifact_does_not_stop_watch(self, truffle_dir, workspace, data_manager):
        project = detect_project(truffle_dir)
        artifacts_dir = project.artifacts_dir
        bad = artifact("Bad", ["Bad"])
        bad["networks"] = {str(NETWORK_ID): TOKEN_ADDRESS}
        write_artifact(artifacts_dir, bad)
        write_artifact(artifacts_dir, artifact("Good", ["Good"], address=TOKEN_ADDRESS))
        watch = replay({(Change.added, str(artifacts_dir / "Good.json"))})
        resolver = ArtifactResolver(workspace, data_manager, AddressBook())

        await ArtifactWatcher(project, resolver, watch=watch).run()

        assert (await data_manager.get("contracts", TOKEN_ADDRESS))["name"] == "Good"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_isolated(self, truffle_dir, resolver):
        project = detect_project(truffle_dir)

        async def process(project, name):
            if name == "A.json":
                raise RuntimeError("boom")

        resolver.process = AsyncMock(side_effect=process)
        watch = replay({(Change.added, str(project.artifacts_dir / "B.json"))})
        watcher = ArtifactWatcher(project, resolver, watch=watch)

        await watcher.process_files(["A.json", "C.json"])
        await watcher.run()

        assert call(project, "C.json") in resolver.process.await_args_list
        assert call(project, "B.json") in resolver.process.await_args_list
