import asyncio
import json
from loguru import logger
from pathlib import Path
from pydantic import ValidationError
from typing import Dict, Optional
from web3 import Web3

from chain_mirror.data_manager import BaseDataManager
from chain_mirror.data_types import (
    CONTRACTS,
    ArtifactBundle,
    BrownieProject,
    ContractUpdate,
    ProjectLayout,
    TruffleProject,
    Workspace,
)
from chain_mirror.errors import ChainMirrorError, MalformedInputError, NotFoundError
from chain_mirror.metrics import ARTIFACTS_SYNCED

TRUFFLE_CONFIG_FILES = ('truffle-config.js', 'truffle.js')
BROWNIE_CONFIG_FILE = 'brownie-config.yaml'
HARDHAT_CONFIG_FILES = ('hardhat.config.js', 'hardhat.config.ts')
SKIPPED_ARTIFACTS = ('Migrations.json',)
BROWNIE_DEV_NETWORK = 'dev'


def detect_project(directory: str | Path, build_directory: str | None = None) -> Optional[ProjectLayout]:
    """
    Detect the build tool used by a project directory

    Args:
        directory (str | Path): Project root
        build_directory (str | None): Truffle `contracts_build_directory` override, relative to the root

    Returns:
        Optional[ProjectLayout]: None when the directory is neither a Truffle nor a Brownie project
    """
    directory = Path(directory).resolve()

    if (directory / BROWNIE_CONFIG_FILE).exists():
        return BrownieProject(working_directory=directory)

    if any((directory / name).exists() for name in TRUFFLE_CONFIG_FILES):
        return TruffleProject(
            working_directory=directory,
            contracts_build_directory=directory / (build_directory or Path('build', 'contracts')),
        )

    logger.warning(f"{directory} does not appear to be a Truffle or Brownie project, contracts metadata won't be uploaded automatically")
    if any((directory / name).exists() for name in HARDHAT_CONFIG_FILES):
        logger.info(f"{directory} appears to be a Hardhat project, contracts metadata has to be synchronized from the Hardhat plugin")
    return None


def read_artifact(path: Path) -> dict:
    try:
        with path.open('r') as f:
            artifact = json.load(f)
    except FileNotFoundError as e:
        raise NotFoundError(f"Artifact {path} not found") from e
    except (OSError, json.JSONDecodeError) as e:
        raise MalformedInputError(f"Could not parse artifact {path}: {str(e)}") from e

    if not isinstance(artifact, dict):
        raise MalformedInputError(f"Artifact {path} is not a JSON object")
    for field in ('contractName', 'abi'):
        if field not in artifact:
            raise MalformedInputError(f"Artifact {path} has no {field}")
    return artifact


def get_artifact_dependencies(artifact: dict) -> Dict[str, Optional[str]]:
    """Direct dependencies of an artifact: every exported symbol but the contract itself"""
    try:
        exported_symbols = artifact['ast']['exportedSymbols']
    except (KeyError, TypeError) as e:
        raise MalformedInputError(f"Artifact {artifact.get('contractName')} has no ast.exportedSymbols") from e

    return {
        symbol: None
        for symbol in exported_symbols
        if symbol != artifact['contractName']
    }


class AddressBook:
    """Last deployed address seen for each contract name"""

    def __init__(self) -> None:
        self._addresses: Dict[str, str] = {}

    def get(self, contract_name: str) -> Optional[str]:
        return self._addresses.get(contract_name)

    def changed(self, contract_name: str, address: str) -> bool:
        return self._addresses.get(contract_name) != address

    def remember(self, contract_name: str, address: str) -> None:
        self._addresses[contract_name] = address

    def forget(self, contract_name: str) -> None:
        self._addresses.pop(contract_name, None)

    def reset(self) -> None:
        self._addresses.clear()


class ArtifactResolver:
    """Turns a compiled artifact into a contract update with its one-level dependency bundles"""

    def __init__(self, workspace: Workspace, data_manager: BaseDataManager, address_book: AddressBook | None = None) -> None:
        self.workspace = workspace
        self.data_manager = data_manager
        self.address_book = address_book if address_book is not None else AddressBook()

    def resolve(self, project: ProjectLayout, file_name: str) -> Optional[ContractUpdate]:
        """
        Resolve the artifact `file_name` of a project

        Args:
            project (ProjectLayout): Project the artifact belongs to
            file_name (str): Artifact path, relative to the project artifacts directory

        Returns:
            Optional[ContractUpdate]: None when the contract is not deployed on the
            workspace network or its address did not change

        Raises:
            MalformedInputError: The artifact could not be parsed
            NotFoundError: The artifact file disappeared
        """
        if not file_name.endswith('.json') or Path(file_name).name in SKIPPED_ARTIFACTS:
            return None
        logger.info(f"Getting artifact for {file_name} in {project.artifacts_dir}")

        match project:
            case TruffleProject():
                artifact = read_artifact(project.artifacts_dir / file_name)
                address = self._truffle_address(artifact)
            case BrownieProject():
                artifact = read_artifact(project.artifacts_dir / file_name)
                address = self._brownie_address(project, artifact['contractName'])
            case _:
                raise TypeError(f"Unsupported project layout {project!r}")

        if not address:
            logger.debug(f"{artifact['contractName']} is not deployed on network {self.workspace.network_id}")
            return None

        try:
            address = Web3.to_checksum_address(address)
        except (ValueError, TypeError) as e:
            raise MalformedInputError(f"Invalid address {address} for {artifact['contractName']}") from e

        contract_name = artifact['contractName']
        if not self.address_book.changed(contract_name, address):
            return None

        dependencies = get_artifact_dependencies(artifact)
        for dependency in dependencies:
            dependencies[dependency] = self._load_dependency(project.artifacts_dir, dependency)

        update = ContractUpdate(
            name=contract_name,
            address=address,
            abi=artifact['abi'],
            artifact=ArtifactBundle.from_artifact(artifact).serialize(),
            dependencies=dependencies,
        )
        # Marked as seen only once the update is complete
        self.address_book.remember(contract_name, address)
        return update

    def _truffle_address(self, artifact: dict) -> Optional[str]:
        networks = artifact.get('networks') or {}
        if not isinstance(networks, dict):
            raise MalformedInputError(f"Artifact {artifact['contractName']} has an invalid networks field")
        network = networks.get(str(self.workspace.network_id))
        if not network:
            return None
        if not isinstance(network, dict):
            raise MalformedInputError(f"Artifact {artifact['contractName']} has an invalid entry for network {self.workspace.network_id}")
        return network.get('address')

    def _brownie_address(self, project: BrownieProject, contract_name: str) -> Optional[str]:
        try:
            with project.deployment_map.open('r') as f:
                deployment_map = json.load(f)
        except FileNotFoundError:
            logger.debug(f"No deployment map at {project.deployment_map}")
            return None
        except (OSError, json.JSONDecodeError) as e:
            raise MalformedInputError(f"Could not parse deployment map {project.deployment_map}: {str(e)}") from e

        if not isinstance(deployment_map, dict):
            raise MalformedInputError(f"Deployment map {project.deployment_map} is not a JSON object")

        # Development networks are recorded under "dev" instead of their chain id
        for network in (str(self.workspace.network_id), BROWNIE_DEV_NETWORK):
            deployments = deployment_map.get(network) or {}
            if not isinstance(deployments, dict):
                raise MalformedInputError(f"Deployment map {project.deployment_map} has an invalid entry for network {network}")
            addresses = deployments.get(contract_name) or []
            if not isinstance(addresses, list):
                raise MalformedInputError(f"Deployment map {project.deployment_map} has invalid addresses for {contract_name}")
            if addresses:
                # Most recent deployment first
                return addresses[0]
        return None

    def _load_dependency(self, artifacts_dir: Path, dependency: str) -> Optional[str]:
        try:
            return ArtifactBundle.from_artifact(read_artifact(artifacts_dir / f"{dependency}.json")).serialize()
        except NotFoundError:
            logger.debug(f"No artifact found for dependency {dependency}")
            return None

    async def persist(self, update: ContractUpdate) -> bool:
        """Store both artifact blobs, then merge the contract record"""
        try:
            await asyncio.gather(
                self.data_manager.store_blob(f"{update.address}/artifact", update.artifact),
                self.data_manager.store_blob(f"{update.address}/dependencies", update.dependencies),
            )
            await self.data_manager.upsert(
                CONTRACTS,
                update.address,
                {'name': update.name, 'address': update.address, 'abi': update.abi},
                merge=True,
            )
        except ChainMirrorError as e:
            logger.error(f"Failed to persist artifacts for {update.name} ({update.address}): {str(e)}")
            # Let the next change of the file retry
            self.address_book.forget(update.name)
            return False

        ARTIFACTS_SYNCED.labels(workspace=self.workspace.name).inc()
        logger.info(f"Updated artifacts for contract {update.name} ({update.address}), with dependencies: {', '.join(update.dependencies)}")
        return True

    async def process(self, project: ProjectLayout, file_name: str) -> Optional[ContractUpdate]:
        """Resolve and persist one artifact file, errors are contained to that file"""
        try:
            update = self.resolve(project, file_name)
        except NotFoundError as e:
            logger.debug(f"Skipping artifact {file_name}: {str(e)}")
            return None
        except (MalformedInputError, ValidationError) as e:
            logger.warning(f"Skipping artifact {file_name}: {str(e)}")
            return None

        if update is None:
            return None
        return update if await self.persist(update) else None
