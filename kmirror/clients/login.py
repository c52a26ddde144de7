"""
Rudimentary login to the Kubernetes API from the well-known sources.

The mirror is not a client library, and avoids bringing too much logic
for proper authentication, especially all the complex auth-providers.
Only the static credentials are supported: tokens, basic auth, certificates.

Two sources are checked: the in-cluster service account (if running in a pod),
and the kubeconfig files (``$KUBECONFIG`` or ``~/.kube/config``).
The first one found wins, in the order of their priorities.
"""
import logging
import os
from typing import Any, Dict, List, Optional

import yaml

from kmirror.structs import credentials

logger = logging.getLogger(__name__)

# Keep as constants to make them patchable. Higher priority is more preferred.
PRIORITY_OF_KUBECONFIG: int = 10
PRIORITY_OF_SERVICE_ACCOUNT: int = 20

# As per https://kubernetes.io/docs/tasks/run-application/access-api-from-pod/
SERVICE_ACCOUNT_TOKEN_PATH = '/var/run/secrets/kubernetes.io/serviceaccount/token'
SERVICE_ACCOUNT_CA_PATH = '/var/run/secrets/kubernetes.io/serviceaccount/ca.crt'
SERVICE_ACCOUNT_SERVER = 'https://kubernetes.default.svc'


def login(
        *,
        context_name: Optional[str] = None,
) -> credentials.ConnectionInfo:
    """
    Find the credentials in any of the known sources, or fail.

    An explicitly requested kubeconfig context disables the service account.
    Otherwise, a broken kubeconfig is only a warning if the service account
    is found: e.g. in a pod with a leftover ``$KUBECONFIG``.
    """
    infos: List[credentials.ConnectionInfo] = []
    if context_name is None:
        sa_info = login_with_service_account()
        if sa_info is not None:
            infos.append(sa_info)

    try:
        kc_info = login_with_kubeconfig(context_name=context_name)
    except (credentials.LoginError, OSError, yaml.YAMLError) as e:
        if not infos:
            raise
        logger.warning(f"Ignoring the kubeconfig in favour of the service account: {e}")
    else:
        if kc_info is not None:
            infos.append(kc_info)

    if not infos:
        raise credentials.LoginError("Cannot find any credentials: no service account, no kubeconfig.")
    info = max(infos, key=lambda info: info.priority)
    logger.debug(f"Logged in to {info.server} (priority {info.priority}).")
    return info


def has_service_account() -> bool:
    return os.path.exists(SERVICE_ACCOUNT_TOKEN_PATH)


def login_with_service_account() -> Optional[credentials.ConnectionInfo]:
    """
    A minimalistic login that can get raw data from a service account.

    No parsing or sophisticated multi-step token retrieval is performed.
    """
    if not has_service_account():
        return None

    with open(SERVICE_ACCOUNT_TOKEN_PATH, encoding='utf-8') as f:
        token = f.read().strip()

    return credentials.ConnectionInfo(
        server=SERVICE_ACCOUNT_SERVER,
        ca_path=SERVICE_ACCOUNT_CA_PATH if os.path.exists(SERVICE_ACCOUNT_CA_PATH) else None,
        token=token or None,
        priority=PRIORITY_OF_SERVICE_ACCOUNT,
    )


def login_with_kubeconfig(
        *,
        context_name: Optional[str] = None,
) -> Optional[credentials.ConnectionInfo]:
    """
    A minimalistic login that can get raw data from the kubeconfig files.

    Multiple files can be listed in ``$KUBECONFIG`` separated as ``$PATH`` is.
    As prescribed by Kubernetes, the first value of every named entry wins.
    """

    # As per https://kubernetes.io/docs/concepts/configuration/organize-cluster-access-kubeconfig/
    kubeconfig = os.environ.get('KUBECONFIG')
    if not kubeconfig and os.path.exists(os.path.expanduser('~/.kube/config')):
        kubeconfig = '~/.kube/config'
    if not kubeconfig:
        return None

    paths = [path.strip() for path in kubeconfig.split(os.pathsep)]
    paths = [os.path.expanduser(path) for path in paths if path]

    # As prescribed: if the file is absent or non-deserialisable, then fail.
    current_context: Optional[str] = context_name
    contexts: Dict[Any, Any] = {}
    clusters: Dict[Any, Any] = {}
    users: Dict[Any, Any] = {}
    for path in paths:

        with open(path, encoding='utf-8') as f:
            config = yaml.safe_load(f.read()) or {}

        if current_context is None:
            current_context = config.get('current-context')
        for item in config.get('contexts') or []:
            contexts.setdefault(item['name'], item.get('context') or {})
        for item in config.get('clusters') or []:
            clusters.setdefault(item['name'], item.get('cluster') or {})
        for item in config.get('users') or []:
            users.setdefault(item['name'], item.get('user') or {})

    # Once fully parsed, use the current context only.
    if current_context is None:
        raise credentials.LoginError("Current context is not set in kubeconfigs.")
    if current_context not in contexts:
        raise credentials.LoginError(f"Context {current_context!r} is absent in kubeconfigs.")
    context = contexts[current_context]
    cluster = clusters.get(context.get('cluster'), {})
    user = users.get(context.get('user'), {})
    if not cluster.get('server'):
        raise credentials.LoginError(f"Context {current_context!r} has no server defined.")

    provider_token = user.get('auth-provider', {}).get('config', {}).get('access-token')

    return credentials.ConnectionInfo(
        server=cluster['server'],
        ca_path=cluster.get('certificate-authority'),
        ca_data=cluster.get('certificate-authority-data'),
        insecure=cluster.get('insecure-skip-tls-verify'),
        certificate_path=user.get('client-certificate'),
        certificate_data=user.get('client-certificate-data'),
        private_key_path=user.get('client-key'),
        private_key_data=user.get('client-key-data'),
        username=user.get('username'),
        password=user.get('password'),
        token=user.get('token') or provider_token,
        priority=PRIORITY_OF_KUBECONFIG,
    )
