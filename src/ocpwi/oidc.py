"""
Publishing of the cluster's OIDC issuer metadata to Azure Blob Storage.

The discovery document and the JWKS are both derived from the extracted
service account public key and served from the storage account's static
website, which is the issuer URL Azure AD fetches during token exchange.
"""

from __future__ import annotations

import json
import typing
import urllib.error
import urllib.request

from cryptography.hazmat.primitives.asymmetric import ec, rsa

import ocpwi
import ocpwi.az
import ocpwi.ensure
import ocpwi.junkdrawer
import ocpwi.keys

if typing.TYPE_CHECKING:
    import pathlib

    import ocpwi.session

DISCOVERY_REQUIRED_FIELDS = (
    "issuer",
    "jwks_uri",
    "response_types_supported",
    "subject_types_supported",
    "id_token_signing_alg_values_supported",
)

JWK_REQUIRED_FIELDS = {
    "RSA": ("n", "e"),
    "EC": ("crv", "x", "y"),
}

EC_CURVES = {
    "secp256r1": "P-256",
    "secp384r1": "P-384",
    "secp521r1": "P-521",
}


def discovery_document(issuer: str, alg: str = "RS256") -> ocpwi.DiscoveryDocument:
    issuer = ocpwi.normalize_issuer(issuer)

    return {
        "issuer": issuer,
        "jwks_uri": f"{issuer}/{ocpwi.JWKS_BLOB_PATH}",
        "response_types_supported": ["id_token"],
        "subject_types_supported": ["public"],
        "id_token_signing_alg_values_supported": [alg],
    }


def jwk(public_key: ocpwi.keys.PublicKey) -> ocpwi.JWK:
    key: ocpwi.JWK = {
        "use": "sig",
        "alg": ocpwi.keys.signing_algorithm(public_key),
        "kid": ocpwi.keys.key_id(public_key),
    }

    if isinstance(public_key, rsa.RSAPublicKey):
        numbers = public_key.public_numbers()
        key |= {
            "kty": "RSA",
            "n": ocpwi.junkdrawer.b64url_uint(numbers.n),
            "e": ocpwi.junkdrawer.b64url_uint(numbers.e),
        }
        return key

    if isinstance(public_key, ec.EllipticCurvePublicKey):
        numbers = public_key.public_numbers()
        size = (public_key.curve.key_size + 7) // 8
        key |= {
            "kty": "EC",
            "crv": EC_CURVES[public_key.curve.name],
            "x": ocpwi.junkdrawer.b64url(numbers.x.to_bytes(size, "big")),
            "y": ocpwi.junkdrawer.b64url(numbers.y.to_bytes(size, "big")),
        }
        return key

    msg = f"unsupported public key type {type(public_key).__name__}"
    raise ValueError(msg)


def jwks(public_key: ocpwi.keys.PublicKey) -> ocpwi.JWKS:
    return {"keys": [jwk(public_key)]}


def validate_discovery_document(doc: typing.Any) -> None:
    if not isinstance(doc, dict):
        msg = "discovery document must be a JSON object"
        raise ValueError(msg)

    missing = [f for f in DISCOVERY_REQUIRED_FIELDS if f not in doc]
    if missing:
        msg = f"discovery document is missing {', '.join(missing)}"
        raise ValueError(msg)


def validate_jwks(doc: typing.Any) -> None:
    if not isinstance(doc, dict) or not isinstance(doc.get("keys"), list) or len(doc["keys"]) == 0:
        msg = "JWKS must be a JSON object with a non-empty 'keys' array"
        raise ValueError(msg)

    for i, key in enumerate(doc["keys"]):
        kty = key.get("kty") if isinstance(key, dict) else None
        if kty not in JWK_REQUIRED_FIELDS:
            msg = f"JWKS key {i} has unsupported kty {kty!r}"
            raise ValueError(msg)

        missing = [f for f in ("kid", *JWK_REQUIRED_FIELDS[kty]) if f not in key]
        if missing:
            msg = f"JWKS key {i} is missing {', '.join(missing)}"
            raise ValueError(msg)


def fetch_json(url: str) -> typing.Any:
    if not url.startswith(("http:", "https:")):
        msg = "URL must start with 'http:' or 'https:'"
        raise ValueError(msg)

    try:
        with urllib.request.urlopen(url) as response:  # noqa: S310
            if response.status != 200:
                msg = f"GET {url} returned HTTP {response.status}"
                raise RuntimeError(msg)

            return json.load(response)
    except urllib.error.URLError as e:
        msg = f"GET {url} failed: {e}"
        raise RuntimeError(msg) from e
    except json.JSONDecodeError as e:
        msg = f"GET {url} did not return JSON: {e}"
        raise RuntimeError(msg) from e


def _write_json(path: pathlib.Path, doc: typing.Any) -> ocpwi.ensure.EnsureResult:
    content = json.dumps(doc, indent=2) + "\n"
    res = ocpwi.ensure.EnsureResult(kind="document", name=str(path))

    if path.exists() and path.read_text() == content:
        res.status = ocpwi.ensure.UNCHANGED
    else:
        res.status = ocpwi.ensure.UPDATED if path.exists() else ocpwi.ensure.CREATED
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)

    ocpwi.ensure.print_result(res)
    return res


def ensure_storage(session: ocpwi.session.WorkloadIdentitySession) -> list[ocpwi.ensure.EnsureResult]:
    ocpwi.junkdrawer.heading("Ensuring OIDC issuer storage")
    account = session.cfg.require_storage_account()

    results = [
        ocpwi.az.ensure_resource_group(session.cfg.resource_group, session.cfg.location, exe_env=session.exe_env),
        ocpwi.az.ensure_storage_account(
            account,
            session.cfg.resource_group,
            session.cfg.location,
            exe_env=session.exe_env,
        ),
        ocpwi.az.ensure_static_website(account, session.cfg.storage_auth_mode, exe_env=session.exe_env),
    ]

    ocpwi.junkdrawer.info("Issuer URL", session.issuer_url)
    return results


def generate_discovery_document(session: ocpwi.session.WorkloadIdentitySession) -> ocpwi.ensure.EnsureResult:
    ocpwi.junkdrawer.heading("Generating OIDC discovery document")
    public_key = ocpwi.keys.load_public_key(session.paths.public_key)

    return _write_json(
        session.paths.discovery_document,
        discovery_document(session.issuer_url, ocpwi.keys.signing_algorithm(public_key)),
    )


def generate_jwks(session: ocpwi.session.WorkloadIdentitySession) -> ocpwi.ensure.EnsureResult:
    ocpwi.junkdrawer.heading("Generating JWKS")
    public_key = ocpwi.keys.load_public_key(session.paths.public_key)

    return _write_json(session.paths.jwks, jwks(public_key))


def _upload(
    session: ocpwi.session.WorkloadIdentitySession,
    path: pathlib.Path,
    blob_name: str,
) -> ocpwi.ensure.EnsureResult:
    if not path.exists():
        msg = f"{str(path)!r} not found; generate it before uploading"
        raise RuntimeError(msg)

    ocpwi.az.upload_blob(
        session.cfg.require_storage_account(),
        path,
        blob_name,
        auth_mode=session.cfg.storage_auth_mode,
        exe_env=session.exe_env,
    )

    res = ocpwi.ensure.EnsureResult(kind="blob", name=blob_name, status=ocpwi.ensure.UPDATED)
    ocpwi.ensure.print_result(res)
    return res


def upload_discovery_document(session: ocpwi.session.WorkloadIdentitySession) -> ocpwi.ensure.EnsureResult:
    ocpwi.junkdrawer.heading("Uploading OIDC discovery document")
    return _upload(session, session.paths.discovery_document, ocpwi.DISCOVERY_BLOB_PATH)


def upload_jwks(session: ocpwi.session.WorkloadIdentitySession) -> ocpwi.ensure.EnsureResult:
    ocpwi.junkdrawer.heading("Uploading JWKS")
    return _upload(session, session.paths.jwks, ocpwi.JWKS_BLOB_PATH)


def verify_discovery_document(session: ocpwi.session.WorkloadIdentitySession) -> ocpwi.DiscoveryDocument:
    ocpwi.junkdrawer.heading("Verifying OIDC discovery document")
    doc = fetch_json(session.discovery_url)
    validate_discovery_document(doc)

    ocpwi.junkdrawer.ok(f"{session.discovery_url} is reachable")
    return doc


def verify_jwks(session: ocpwi.session.WorkloadIdentitySession) -> ocpwi.JWKS:
    ocpwi.junkdrawer.heading("Verifying JWKS")
    doc = fetch_json(session.jwks_url)
    validate_jwks(doc)

    ocpwi.junkdrawer.ok(f"{session.jwks_url} is reachable")
    return doc


def check_consistency(
    issuer: str,
    discovery: typing.Any,
    published_jwks: typing.Any,
    public_key: ocpwi.keys.PublicKey,
) -> None:
    """Check the published documents describe `issuer` and the local signing key."""
    validate_discovery_document(discovery)
    validate_jwks(published_jwks)

    if discovery["issuer"] != issuer:
        msg = f"published issuer {discovery['issuer']!r} does not match {issuer!r}"
        raise ValueError(msg)

    want = jwk(public_key)
    for key in published_jwks["keys"]:
        if key.get("kid") != want["kid"]:
            continue

        fields = JWK_REQUIRED_FIELDS[want["kty"]]
        if key.get("kty") != want["kty"] or any(key.get(f) != want[f] for f in fields):
            msg = f"published key {want['kid']!r} does not match the local public key material"
            raise ValueError(msg)

        return

    msg = f"published JWKS does not contain the signing key {want['kid']!r}"
    raise ValueError(msg)


def verify_consistency(session: ocpwi.session.WorkloadIdentitySession) -> None:
    ocpwi.junkdrawer.heading("Verifying discovery document and JWKS consistency")

    discovery = fetch_json(session.discovery_url)
    validate_discovery_document(discovery)
    published_jwks = fetch_json(discovery["jwks_uri"])

    check_consistency(
        session.issuer_url,
        discovery,
        published_jwks,
        ocpwi.keys.load_public_key(session.paths.public_key),
    )

    ocpwi.junkdrawer.ok(f"{discovery['jwks_uri']} serves the cluster signing key")


def publish_all(session: ocpwi.session.WorkloadIdentitySession) -> None:
    """Regenerate and re-upload both documents from the same key, then verify them."""
    ensure_storage(session)
    generate_discovery_document(session)
    generate_jwks(session)
    upload_discovery_document(session)
    upload_jwks(session)
    verify_discovery_document(session)
    verify_jwks(session)
    verify_consistency(session)
