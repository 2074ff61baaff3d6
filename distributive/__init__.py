"""
distributive: declarative host-level health checks.

A checklist (YAML or JSON) names parameterised checks. Each entry is looked
up in the check registry, validated into a typed Check, then probed
concurrently by the engine, which aggregates the outcomes into a Report.

Usage:
    import distributive.checks  # registers the built-in probes
    from distributive.checklist import checklist_from_file
    from distributive.engine import run_checklist

    report = run_checklist(checklist_from_file("/etc/distributive.d/base.yaml"))
    print(report.render())
"""

__version__ = "0.3.0"
