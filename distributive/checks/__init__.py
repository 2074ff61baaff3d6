"""
distributive.checks: the built-in probes.

Importing this package registers every check with distributive.registry.
"""

from distributive.checks import (  # noqa: F401
    docker,
    filesystem,
    misc,
    network,
    packages,
    systemctl,
    usage,
    users_groups,
    zookeeper,
)
