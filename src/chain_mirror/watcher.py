import asyncio
from loguru import logger
from pathlib import Path
from typing import AsyncIterator, Callable, Iterable, List, Set, Tuple
from watchfiles import Change, awatch

from chain_mirror.artifacts import ArtifactResolver
from chain_mirror.data_types import ProjectLayout

ChangeBatch = Set[Tuple[Change, str]]


class ArtifactWatcher:
    """Feeds added or modified artifact files of one project to the resolver"""

    def __init__(
        self,
        project: ProjectLayout,
        resolver: ArtifactResolver,
        watch: Callable[[Path], AsyncIterator[ChangeBatch]] = awatch,
    ) -> None:
        self.project = project
        self.resolver = resolver
        self.watch = watch

    def existing_artifacts(self) -> List[str]:
        artifacts_dir = self.project.artifacts_dir
        return sorted(
            str(path.relative_to(artifacts_dir))
            for path in artifacts_dir.rglob('*.json')
        )

    async def process_files(self, file_names: Iterable[str]) -> None:
        file_names = list(file_names)
        results = await asyncio.gather(
            *(self.resolver.process(self.project, name) for name in file_names),
            return_exceptions=True,
        )
        # One broken artifact never stops the watch
        for name, result in zip(file_names, results):
            if isinstance(result, Exception):
                logger.opt(exception=result).error(f"Unexpected error while processing artifact {name}: {str(result)}")

    async def run(self) -> None:
        artifacts_dir = self.project.artifacts_dir
        if not artifacts_dir.is_dir():
            logger.warning(f"Artifacts directory {artifacts_dir} does not exist, compile the project before watching it")
            return

        logger.info(f"Watching artifacts in {artifacts_dir}")
        # Files already on disk count as added
        await self.process_files(self.existing_artifacts())

        async for changes in self.watch(artifacts_dir):
            file_names = {
                str(Path(path).relative_to(artifacts_dir))
                for change, path in changes
                if change in (Change.added, Change.modified)
            }
            await self.process_files(sorted(file_names))
