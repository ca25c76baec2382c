"""
Run and install command logic.
"""

from mindy.orchestrator.confirm import AutoConfirmer, Confirmer, TerminalConfirmer
from mindy.orchestrator.install import InstallOrchestrator
from mindy.orchestrator.installer import PackageInstaller
from mindy.orchestrator.run import RunOrchestrator, parse_run_input

__all__ = [
    "AutoConfirmer",
    "Confirmer",
    "InstallOrchestrator",
    "PackageInstaller",
    "RunOrchestrator",
    "TerminalConfirmer",
    "parse_run_input",
]
