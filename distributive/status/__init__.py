"""
distributive.status: read-only queries against the host.

  net         /proc/net tables, routing table, interfaces (psutil)
  systemd     systemctl properties, sockets, timers, unit files
  containers  docker CLI listings and the Docker API socket

Helpers raise ProbeError when the host cannot be queried, so a check can let
them propagate and the engine records the check as unable to reach a verdict.
"""
