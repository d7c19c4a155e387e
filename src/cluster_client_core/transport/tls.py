"""Build ``ssl.SSLContext`` objects from stored TLS material."""

import logging
import ssl
import tempfile
from pathlib import Path

from cluster_client_core.auth.exceptions import TLSConfigError
from cluster_client_core.cluster.models import TLSClientConfig

logger = logging.getLogger(__name__)


def _load_client_certificate(context: ssl.SSLContext, cert_data: bytes, key_data: bytes) -> None:
    # load_cert_chain only accepts paths
    with tempfile.TemporaryDirectory(prefix="cluster-tls-") as tmp_dir:
        cert_path = Path(tmp_dir) / "client.crt"
        key_path = Path(tmp_dir) / "client.key"
        cert_path.write_bytes(cert_data)
        key_path.write_bytes(key_data)
        key_path.chmod(0o600)
        context.load_cert_chain(certfile=str(cert_path), keyfile=str(key_path))


def build_ssl_context(tls: TLSClientConfig) -> ssl.SSLContext:
    """Create the client SSL context for a cluster.

    CA data replaces the system trust store. With ``insecure`` set, server
    certificates are not verified at all.

    Raises:
        TLSConfigError: If the material is malformed or inconsistent.
    """
    if tls.has_ca() and tls.insecure:
        raise TLSConfigError("specifying a root certificates bundle with the insecure flag is not allowed")
    if bool(tls.cert_data) != bool(tls.key_data):
        missing = "key" if tls.cert_data else "certificate"
        raise TLSConfigError(f"client certificate and key must be provided together (missing {missing} data)")

    try:
        if tls.ca_data:
            context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cadata=tls.ca_data.decode("ascii"))
        else:
            context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    except (ssl.SSLError, ValueError) as e:
        raise TLSConfigError(f"invalid CA data: {e}") from e

    if tls.insecure:
        logger.warning("TLS certificate verification is disabled for this cluster")
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    if tls.has_cert_auth():
        try:
            _load_client_certificate(context, tls.cert_data, tls.key_data)
        except (ssl.SSLError, ValueError) as e:
            raise TLSConfigError(f"invalid client certificate or key: {e}") from e

    return context
