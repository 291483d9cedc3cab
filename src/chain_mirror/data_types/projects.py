from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class TruffleProject:
    working_directory: Path
    contracts_build_directory: Path

    @property
    def artifacts_dir(self) -> Path:
        return self.contracts_build_directory


@dataclass(frozen=True)
class BrownieProject:
    working_directory: Path

    @property
    def artifacts_dir(self) -> Path:
        return self.working_directory / 'build' / 'contracts'

    @property
    def deployment_map(self) -> Path:
        return self.working_directory / 'build' / 'deployments' / 'map.json'


ProjectLayout = TruffleProject | BrownieProject
