from __future__ import annotations

import base64
import hashlib
import typing

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

import ocpwi
import ocpwi.backup
import ocpwi.ensure
import ocpwi.junkdrawer

if typing.TYPE_CHECKING:
    import pathlib

    import ocpwi.session

PublicKey = rsa.RSAPublicKey | ec.EllipticCurvePublicKey

EC_ALGORITHMS = {
    "secp256r1": "ES256",
    "secp384r1": "ES384",
    "secp521r1": "ES512",
}


def load_public_key(path: pathlib.Path) -> PublicKey:
    key = serialization.load_pem_public_key(path.read_bytes())
    if not isinstance(key, (rsa.RSAPublicKey, ec.EllipticCurvePublicKey)):
        msg = f"unsupported signing key type {type(key).__name__} in {str(path)!r}"
        raise ValueError(msg)

    return key


def public_der(public_key: PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def key_id(public_key: PublicKey) -> str:
    """The `kid` Kubernetes stamps on service account tokens signed by this key."""
    return ocpwi.junkdrawer.b64url(hashlib.sha256(public_der(public_key)).digest())


def signing_algorithm(public_key: PublicKey) -> str:
    if isinstance(public_key, rsa.RSAPublicKey):
        return "RS256"

    try:
        return EC_ALGORITHMS[public_key.curve.name]
    except KeyError:
        msg = f"unsupported EC curve {public_key.curve.name!r}"
        raise ValueError(msg) from None


def check_pair(private_pem: bytes, public_pem: bytes) -> None:
    private_key = serialization.load_pem_private_key(private_pem, password=None)
    public_key = serialization.load_pem_public_key(public_pem)

    if public_der(private_key.public_key()) != public_der(public_key):
        msg = "signing key secret holds a public key that does not match its private key"
        raise ValueError(msg)


def _write(path: pathlib.Path, content: bytes, mode: int) -> ocpwi.ensure.EnsureResult:
    res = ocpwi.ensure.EnsureResult(kind="key file", name=str(path))

    if path.exists() and path.read_bytes() == content:
        res.status = ocpwi.ensure.UNCHANGED
    else:
        res.status = ocpwi.ensure.UPDATED if path.exists() else ocpwi.ensure.CREATED
        # mode is set before any content lands
        path.touch(mode=mode)
        path.chmod(mode)
        path.write_bytes(content)

    path.chmod(mode)
    ocpwi.ensure.print_result(res)
    return res


def extract_signing_keys(session: ocpwi.session.WorkloadIdentitySession) -> list[ocpwi.ensure.EnsureResult]:
    """Decode the backed-up bound service account signing key into a key pair on disk."""
    ocpwi.junkdrawer.heading("Extracting service account signing keys")

    secret = ocpwi.backup.load_backup(session, ocpwi.backup.SIGNING_KEY)
    data = secret.get("data") or {}

    missing = [f for f in (ocpwi.SIGNING_KEY_PRIVATE_FIELD, ocpwi.SIGNING_KEY_PUBLIC_FIELD) if f not in data]
    if missing:
        msg = f"signing key backup is missing {', '.join(missing)}"
        raise ValueError(msg)

    private_pem = base64.b64decode(data[ocpwi.SIGNING_KEY_PRIVATE_FIELD])
    public_pem = base64.b64decode(data[ocpwi.SIGNING_KEY_PUBLIC_FIELD])

    check_pair(private_pem, public_pem)

    session.paths.keys.mkdir(parents=True, exist_ok=True)
    results = [
        _write(session.paths.private_key, private_pem, 0o600),
        _write(session.paths.public_key, public_pem, 0o644),
    ]

    public_key = load_public_key(session.paths.public_key)
    ocpwi.junkdrawer.info("Key ID", key_id(public_key))
    ocpwi.junkdrawer.info("Algorithm", signing_algorithm(public_key))

    return results
