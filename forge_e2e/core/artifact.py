"""
Broadcast artifact parsing

Reads the run-latest.json file forge writes for a broadcast script run and
answers the lookups the orchestrator needs. Every lookup expects exactly
one matching record; anything else is an error, never a best guess.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..utils.common import hex_to_int, same_address
from ..utils.exceptions import ArtifactError, ErrorCodes, QueryMatchError

LOG = logging.getLogger(__name__)


def select_one(
    records: List[Dict[str, Any]],
    field: str,
    value: Any,
    matches: Optional[Callable[[Any, Any], bool]] = None,
    source: Optional[str] = None
) -> Dict[str, Any]:
    """
    Return the single record whose field equals value.

    Args:
        records: Records to search
        field: Key to compare
        value: Expected value
        matches: Comparison function (default: equality)
        source: Artifact path for error reporting

    Raises:
        QueryMatchError: If zero or more than one record matches
    """
    matches = matches or (lambda a, b: a == b)
    found = [r for r in records if isinstance(r, dict) and matches(r.get(field), value)]

    if len(found) != 1:
        qualifier = "No" if not found else f"{len(found)}"
        raise QueryMatchError(
            f"{qualifier} records with {field} == {value!r}, expected exactly one",
            field=field,
            value=value,
            match_count=len(found),
            path=source
        )
    return found[0]


class BroadcastArtifact:
    """
    A forge broadcast artifact.

    Holds `transactions[]` (contractName, contractAddress, ...) and
    `receipts[]` (contractAddress, blockNumber, ...).
    """

    def __init__(self, data: Dict[str, Any], path: Optional[Path] = None):
        if not isinstance(data, dict):
            raise ArtifactError("Broadcast artifact must be a JSON object", path=str(path) if path else None)
        self.data = data
        self.path = path

    @classmethod
    def load(cls, path: Path) -> "BroadcastArtifact":
        """Load an artifact from disk"""
        path = Path(path)
        if not path.exists():
            raise ArtifactError(
                f"Broadcast artifact not found: {path}",
                path=str(path),
                code=ErrorCodes.ARTIFACT_NOT_FOUND
            )
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ArtifactError(f"Invalid JSON in broadcast artifact {path}: {e}", path=str(path))

        LOG.debug(f"Loaded broadcast artifact {path}")
        return cls(data, path)

    @property
    def _source(self) -> Optional[str]:
        return str(self.path) if self.path else None

    def _list(self, key: str) -> List[Dict[str, Any]]:
        records = self.data.get(key)
        if not isinstance(records, list):
            raise ArtifactError(f"Broadcast artifact has no '{key}' list", path=self._source)
        return records

    @property
    def transactions(self) -> List[Dict[str, Any]]:
        return self._list("transactions")

    @property
    def receipts(self) -> List[Dict[str, Any]]:
        return self._list("receipts")

    def contract_address(self, contract_name: str) -> str:
        """Address of the single transaction that created contract_name"""
        tx = select_one(self.transactions, "contractName", contract_name, source=self._source)
        address = tx.get("contractAddress")
        if not address:
            raise ArtifactError(
                f"Transaction for {contract_name} has no contractAddress",
                path=self._source
            )
        return address

    def block_number(self, contract_address: str) -> int:
        """Block number of the single receipt for contract_address"""
        try:
            receipt = select_one(
                self.receipts, "contractAddress", contract_address,
                matches=same_address, source=self._source
            )
        except (TypeError, ValueError) as e:
            raise ArtifactError(f"Malformed address in receipts: {e}", path=self._source)

        block_number = receipt.get("blockNumber")
        if block_number is None:
            raise ArtifactError(
                f"Receipt for {contract_address} has no blockNumber",
                path=self._source
            )
        try:
            return hex_to_int(block_number)
        except (TypeError, ValueError):
            raise ArtifactError(
                f"Invalid blockNumber {block_number!r} for {contract_address}",
                path=self._source
            )
