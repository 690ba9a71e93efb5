from __future__ import annotations

import os
import pathlib


class Paths:
    def __init__(
        self,
        root: pathlib.Path | str | None = None,
        *,
        key_dir: pathlib.Path | str | None = None,
        backup_dir: pathlib.Path | str | None = None,
        config: pathlib.Path | str | None = None,
    ):
        self._root = pathlib.Path(root) if root is not None else None
        self._config = pathlib.Path(config) if config is not None else None
        self._key_dir = pathlib.Path(key_dir) if key_dir is not None else None
        self._backup_dir = pathlib.Path(backup_dir) if backup_dir is not None else None

    @property
    def root(self) -> pathlib.Path:
        """Return the working directory holding backups, keys and OIDC documents.

        An explicit root wins, then the OCPWI_ROOT environment variable, then
        the current directory.
        """
        if self._root is not None:
            return self._root

        if "OCPWI_ROOT" in os.environ:
            return pathlib.Path(os.environ["OCPWI_ROOT"])

        return pathlib.Path.cwd()

    @property
    def config(self) -> pathlib.Path:
        if self._config is not None:
            return self._config

        if "OCPWI_CONFIG" in os.environ:
            return pathlib.Path(os.environ["OCPWI_CONFIG"])

        return self.root / "ocpwi.yaml"

    @property
    def backups(self) -> pathlib.Path:
        if self._backup_dir is not None:
            return self._backup_dir

        return self.root / "backup"

    @property
    def keys(self) -> pathlib.Path:
        if self._key_dir is not None:
            return self._key_dir

        return self.root / "keys"

    @property
    def oidc(self) -> pathlib.Path:
        return self.root / "oidc"

    @property
    def private_key(self) -> pathlib.Path:
        return self.keys / "sa-signer.key"

    @property
    def public_key(self) -> pathlib.Path:
        return self.keys / "sa-signer.pub"

    @property
    def discovery_document(self) -> pathlib.Path:
        return self.oidc / "openid-configuration.json"

    @property
    def jwks(self) -> pathlib.Path:
        return self.oidc / "jwks.json"

    def backup(self, name: str) -> pathlib.Path:
        return self.backups / f"{name}.yaml"
