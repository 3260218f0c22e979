"""Contract ABIs shipped with the gateway."""

from importlib import resources
from typing import Any, Dict, List
import functools
import json


@functools.lru_cache(maxsize=None)
def load_contract_abi(filename: str) -> List[Dict[str, Any]]:
    """Load an ABI JSON file from the contracts package."""
    with resources.files(__package__).joinpath(filename).open("r", encoding="utf-8") as fh:
        return json.load(fh)


__all__ = ["load_contract_abi"]
