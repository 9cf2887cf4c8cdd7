"""
Target group priority allocator.

Listener rules of the core HTTP listener need a priority that is unique per
listener. Priorities are tracked in a flat JSON file mapping stack name to
priority, which is the sole source of truth:

    {"SpicedlingFinalProjectServicesJasmineDanielStreif": 1, ...}

Invariants:
- priorities are positive integers, unique across the table
- once assigned to a stack name a priority never changes
- new stacks get 1 + the current maximum, so values only grow
- there is no deletion path, priorities of removed projects are not reclaimed

Allocation happens under an exclusive lock on a sidecar `.lock` file and reads
under a shared one. The table is replaced atomically, so overlapping deploys on
the same host cannot hand out the same priority twice.
"""

import fcntl
import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Union

from spicedlings_shared.errors import PriorityTableError
from spicedlings_shared.paths import TARGET_GROUPS_PRIORITIES


class TargetGroupPriorities:
    """
    File-backed allocator of load balancer listener rule priorities.

    Usage:
        priorities = TargetGroupPriorities()
        priority = priorities.get_available_priority(stack_name)
    """

    def __init__(self, path: Union[str, Path] = TARGET_GROUPS_PRIORITIES):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + '.lock')

    @contextmanager
    def _locked(self, exclusive: bool = True) -> Iterator[None]:
        """Hold the sidecar lock, shared for reads and exclusive for allocation."""
        if not self.path.is_file():
            raise PriorityTableError(
                f"Target group priorities file not found: {self.path}",
                {'path': str(self.path)}
            )
        with open(self.lock_path, 'a') as lock_file:
            fcntl.flock(lock_file, fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
            try:
                yield
            finally:
                fcntl.flock(lock_file, fcntl.LOCK_UN)

    def _read(self) -> Dict[str, int]:
        """
        Read and validate the full table.

        Raises:
            PriorityTableError: If the file is missing, not valid JSON, or does
                not hold a mapping of names to unique positive integers
        """
        try:
            with open(self.path, encoding='utf-8') as table_file:
                table = json.load(table_file)
        except FileNotFoundError:
            raise PriorityTableError(
                f"Target group priorities file not found: {self.path}",
                {'path': str(self.path)}
            )
        except (json.JSONDecodeError, UnicodeDecodeError) as error:
            raise PriorityTableError(
                f"Target group priorities file is not valid UTF-8 JSON: {self.path}",
                {'path': str(self.path), 'error': str(error)}
            )

        if not isinstance(table, dict):
            raise PriorityTableError(
                'Target group priorities file must hold a JSON object',
                {'path': str(self.path)}
            )

        # bool is an int subclass, but true/false are not priorities
        invalid = [
            name for name, value in table.items()
            if isinstance(value, bool) or not isinstance(value, int) or value < 1
        ]
        if invalid:
            raise PriorityTableError(
                'Target group priorities must be positive integers',
                {'path': str(self.path), 'stacks': sorted(invalid)}
            )

        if len(set(table.values())) != len(table):
            raise PriorityTableError(
                'Target group priorities must be unique',
                {'path': str(self.path)}
            )

        return table

    def _write(self, table: Dict[str, int]) -> None:
        """Overwrite the full table through a temporary file in the same directory."""
        descriptor, temporary_path = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=self.path.name,
            suffix='.tmp'
        )
        try:
            with os.fdopen(descriptor, 'w', encoding='utf-8') as table_file:
                json.dump(table, table_file)
            os.replace(temporary_path, self.path)
        except BaseException:
            if os.path.exists(temporary_path):
                os.unlink(temporary_path)
            raise

    def get_available_priority(self, stack_name: str) -> int:
        """
        Return the priority of a stack, allocating the next free one on first request.

        Args:
            stack_name: Name of the stack owning the listener rule

        Returns:
            The stack's priority; the same value on every call for the same name

        Raises:
            PriorityTableError: If the table cannot be read
        """
        with self._locked():
            table = self._read()

            if stack_name not in table:
                table[stack_name] = max([0, *table.values()]) + 1
                self._write(table)

            return table[stack_name]

    def priorities(self) -> Dict[str, int]:
        """Return a copy of the current table."""
        with self._locked(exclusive=False):
            return dict(self._read())
