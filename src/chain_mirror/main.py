import asyncio
import sys
from dynaconf import Dynaconf
from dynaconf.validator import ValidationError
from loguru import logger
from typing import List

from chain_mirror.artifacts import AddressBook, ArtifactResolver, detect_project
from chain_mirror.controller import ResilienceController
from chain_mirror.data_manager import get_data_manager
from chain_mirror.data_types import Workspace
from chain_mirror.errors import ChainMirrorError
from chain_mirror.gaps import Backfiller
from chain_mirror.indexer import EVMIndexer
from chain_mirror.metrics import start_metrics_server
from chain_mirror.signatures import SignatureResolver
from chain_mirror.synchronizer import BlockSynchronizer
from chain_mirror.utils import load_config
from chain_mirror.watcher import ArtifactWatcher


def setup_logging(config: Dynaconf) -> None:
    logger.remove()
    logger.add(sys.stderr, level=config.logging.level)
    # Save logs to file
    logger.add(f"{config.logging.dir}/chain-mirror.log", rotation="100 MB", retention="10 days", level=config.logging.level)


def build_watchers(config: Dynaconf, resolver: ArtifactResolver) -> List[ArtifactWatcher]:
    watchers = []
    for directory in config.artifacts.directories:
        project = detect_project(directory, config.artifacts.get('build_directory'))
        if project is None:
            continue
        logger.info(f"Detected {type(project).__name__.removesuffix('Project')} project for {project.working_directory}")
        watchers.append(ArtifactWatcher(project, resolver))
    return watchers


async def main(config: Dynaconf) -> None:
    workspace = Workspace(
        name=config.workspace.name,
        rpc_server=config.workspace.rpc_server,
        network_id=config.workspace.network_id,
    )
    logger.info(f"Using workspace \"{workspace.name}\"")

    if config.metrics.enabled:
        start_metrics_server(config.metrics.port, addr=config.metrics.addr)

    storage_config = {key.lower(): value for key, value in config.storage.items() if key.lower() != 'type'}
    data_manager = get_data_manager(config.storage.type, workspace.name, storage_config)

    resolver = ArtifactResolver(workspace, data_manager, AddressBook())
    watchers = build_watchers(config, resolver) if config.sync.mode != 'server' else []

    if config.sync.mode == 'local':
        logger.info("Local mode - only watching for contract changes")
        await asyncio.gather(*(watcher.run() for watcher in watchers))
        return

    client = EVMIndexer(workspace, rpc_retries=config.sync.rpc_retries, poll_interval=config.sync.poll_interval)
    synchronizer = BlockSynchronizer(client, data_manager, SignatureResolver(data_manager), workspace.name)
    backfiller = Backfiller(
        client,
        data_manager,
        synchronizer,
        workspace.name,
        first_block=config.sync.first_block,
        max_concurrency=config.sync.max_concurrency,
    )

    watcher_tasks = []

    async def start_watchers() -> None:
        # Watchers outlive reconnects, start them on the first subscription only
        if watchers and not watcher_tasks:
            watcher_tasks.extend(asyncio.create_task(watcher.run()) for watcher in watchers)

    if config.sync.mode == 'server':
        logger.info("Server mode - only listening to transactions")

    controller = ResilienceController(
        client,
        backfiller,
        synchronizer,
        workspace.name,
        reconnect_delay=config.sync.reconnect_delay,
        on_subscribed=start_watchers,
    )
    await controller.run()


def run() -> None:
    try:
        config = load_config()
    except (ChainMirrorError, ValidationError) as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    setup_logging(config)
    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        logger.info("Program interrupted by user. Exiting.")
    except ValueError as e:
        logger.error(f"Invalid configuration value: {e}")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"An unexpected error occurred in the main loop: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
