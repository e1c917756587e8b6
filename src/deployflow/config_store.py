# config_store.py
from __future__ import annotations

import re
from typing import Dict, Optional, Tuple, Union

from .errors import DuplicateConfigKeyError, InvalidKeyPathError, OutsideNamespaceError
from .model import PublishedConfigEntry, ResourceAttribute

KEY_PATH_RE = re.compile(r"^(/[A-Za-z0-9_.\-]+)+$")


def check_key_path(key_path: str) -> str:
    if not KEY_PATH_RE.match(key_path or ""):
        raise InvalidKeyPathError(
            f"Invalid config key path '{key_path}'",
            {"key_path": key_path, "expected": "/segment/segment (letters, digits, _ . -)"},
        )
    return key_path


class PublishedConfigStore:
    """
    Write-once key/value entries under one namespace.

    Downstream stacks discover provisioned identifiers (bucket name, domain)
    by reading these keys; read permission is granted on the namespace prefix.
    """

    def __init__(self, namespace: str):
        self.namespace = check_key_path(namespace)
        self._entries: Dict[str, PublishedConfigEntry] = {}

    def publish(
        self,
        key_path: str,
        value: Union[str, ResourceAttribute],
        description: Optional[str] = None,
    ) -> PublishedConfigEntry:
        check_key_path(key_path)
        if not key_path.startswith(self.namespace + "/"):
            raise OutsideNamespaceError(
                f"Key '{key_path}' is outside namespace '{self.namespace}'",
                {"key_path": key_path, "namespace": self.namespace},
            )
        if key_path in self._entries:
            raise DuplicateConfigKeyError(
                f"Config key '{key_path}' is already published",
                {"key_path": key_path, "existing": self._entries[key_path].description or ""},
            )
        entry = PublishedConfigEntry(key_path=key_path, value=value, description=description)
        self._entries[key_path] = entry
        return entry

    def get(self, key_path: str) -> Union[str, ResourceAttribute]:
        try:
            return self._entries[key_path].value
        except KeyError:
            raise KeyError(f"Config key not published: {key_path}") from None

    def __contains__(self, key_path: object) -> bool:
        return key_path in self._entries

    def entries(self) -> Tuple[PublishedConfigEntry, ...]:
        return tuple(self._entries[k] for k in sorted(self._entries))

    def read_resource(self, account: str, region: str) -> str:
        """ARN pattern covering every key of the namespace."""
        return f"arn:aws:ssm:{region}:{account}:parameter{self.namespace}/*"
