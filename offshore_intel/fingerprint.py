import hashlib
import json
from dataclasses import asdict, is_dataclass


def make_fingerprint(payload) -> str:
    """sha256 of the canonical JSON form; dataclasses are flattened first."""
    if is_dataclass(payload) and not isinstance(payload, type):
        payload = asdict(payload)
    serialized = json.dumps(payload, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def batch_fingerprint(sources: dict[str, list]) -> str:
    """Fingerprint of a whole batch input; row order matters."""
    return make_fingerprint({name: sources.get(name) or [] for name in sorted(sources)})
