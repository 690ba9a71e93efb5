import azure.core.exceptions
import azure.identity
import azure.keyvault.secrets


def secret_client(vault_url: str) -> azure.keyvault.secrets.SecretClient:
    return azure.keyvault.secrets.SecretClient(
        vault_url=vault_url,
        credential=azure.identity.DefaultAzureCredential(),
    )


def secret_exists(client: azure.keyvault.secrets.SecretClient, secret_name: str) -> bool:
    try:
        client.get_secret(secret_name)
    except azure.core.exceptions.ResourceNotFoundError:
        return False

    return True


def missing_secrets(vault_url: str, secret_names: list[str]) -> list[str]:
    client = secret_client(vault_url)

    return [name for name in secret_names if not secret_exists(client, name)]
