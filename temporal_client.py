"""Temporal client factory.

Connects to a Temporal server using settings from the environment. A local
development server needs only TEMPORAL_ENDPOINT; Temporal Cloud also needs
TEMPORAL_API_KEY (or an mTLS certificate and key), which switches TLS on.
"""

import os
from pathlib import Path
from typing import Optional, Union

# Load .env file if it exists
from dotenv import load_dotenv
env_path = Path(__file__).resolve().parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

from temporalio.client import Client
from temporalio.service import TLSConfig

DEFAULT_ENDPOINT = "localhost:7233"


def _read_file(env_name: str) -> bytes:
    path = Path(os.environ[env_name])
    if not path.exists():
        raise ValueError(f"{env_name} does not exist: {path}")
    return path.read_bytes()


async def get_temporal_client() -> Client:
    """Create and return a connected Temporal client.

    Reads configuration from environment variables:
    - TEMPORAL_ENDPOINT: host:port (default "localhost:7233")
    - TEMPORAL_NAMESPACE: Namespace (default "default")
    - TEMPORAL_API_KEY: API key for Temporal Cloud (optional)
    - TEMPORAL_CERT_PATH / TEMPORAL_KEY_PATH: mTLS client certificate and key (optional)

    Raises:
        ValueError: If only one of the mTLS paths is set, or a file is missing
    """
    endpoint = os.getenv("TEMPORAL_ENDPOINT", DEFAULT_ENDPOINT)
    namespace = os.getenv("TEMPORAL_NAMESPACE", "default")
    api_key: Optional[str] = os.getenv("TEMPORAL_API_KEY")
    cert_path = os.getenv("TEMPORAL_CERT_PATH")
    key_path = os.getenv("TEMPORAL_KEY_PATH")

    if bool(cert_path) != bool(key_path):
        raise ValueError("TEMPORAL_CERT_PATH and TEMPORAL_KEY_PATH must be set together")

    tls: Union[bool, TLSConfig] = bool(api_key)
    if cert_path:
        tls = TLSConfig(
            client_cert=_read_file("TEMPORAL_CERT_PATH"),
            client_private_key=_read_file("TEMPORAL_KEY_PATH"),
        )

    return await Client.connect(
        target_host=endpoint,
        namespace=namespace,
        tls=tls,
        api_key=api_key,
    )
