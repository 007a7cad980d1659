"""
Service context for log lines.

Identifies which service instance wrote a line, locally (pid) or in a container (hostname).
"""

from functools import lru_cache
import os
import socket


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = os.getenv('SERVICE_NAME', 'booking-session')
    deploy_env = os.getenv('DEPLOY_ENV', 'local_dev')

    # Containers get a short random hostname, local runs use the pid
    instance_id = os.getenv('HOSTNAME') or socket.gethostname()
    if deploy_env == 'local_dev' or not instance_id:
        instance_id = str(os.getpid())

    return f'{service_name}@{deploy_env}:{instance_id[:12]}'
