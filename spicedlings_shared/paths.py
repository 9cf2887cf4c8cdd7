"""Common filesystem paths of the repository."""

from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
DEPLOYMENTS = ROOT / 'deployments'
PROJECTS = ROOT / 'projects'

DEFAULT_PAGE = DEPLOYMENTS / 'spicedlings' / 'default.html'
TARGET_GROUPS_PRIORITIES = DEPLOYMENTS / 'target_groups_priorities.json'
