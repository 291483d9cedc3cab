import json
from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class ArtifactBundle(BaseModel):
    """The part of a compiled artifact that is mirrored for a contract"""

    contract_name: str
    abi: List[Dict[str, Any]]
    ast: Optional[Dict[str, Any]] = None
    source: Optional[str] = None

    @classmethod
    def from_artifact(cls, artifact: dict) -> "ArtifactBundle":
        return cls(
            contract_name=artifact['contractName'],
            abi=artifact['abi'],
            ast=artifact.get('ast'),
            source=artifact.get('source'),
        )

    def serialize(self) -> str:
        return json.dumps({
            'contractName': self.contract_name,
            'abi': self.abi,
            'ast': self.ast,
            'source': self.source,
        })


class ContractUpdate(BaseModel):
    name: str
    address: str
    abi: List[Dict[str, Any]]
    artifact: str
    # Unresolved dependencies (artifact file not found) are kept as None
    dependencies: Dict[str, Optional[str]]
