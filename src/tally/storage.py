# reactionTally - Discord Reaction Tally Bot
# Copyright (c) 2025-2026 reactionTally contributors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

"""
CSV storage for reaction tallies and opted-out users.

Both tables are small and rewritten in full on every save. A missing file
is treated as an empty table and recreated with just its header row.
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Union

logger = logging.getLogger(__name__)

TALLY_HEADER = ["User ID", "User Name", "Reactions Received"]
IGNORED_HEADER = ["User ID"]

UNKNOWN_USER_NAME = "Unknown"


class StorageError(Exception):
    """Raised when a table cannot be read or written."""

    pass


@dataclass
class TallyRecord:
    """Reactions received by one message author."""

    user_id: int
    user_name: str = UNKNOWN_USER_NAME
    count: int = 0


class TallyStorage:
    """Reads and writes the tally and opt-out CSV files."""

    def __init__(
        self,
        tally_path: Union[str, Path],
        ignored_path: Union[str, Path],
    ):
        """
        Initialize the storage.

        Args:
            tally_path: CSV file holding one row per user with their count
            ignored_path: CSV file holding one opted-out user ID per row
        """
        self.tally_path = Path(tally_path)
        self.ignored_path = Path(ignored_path)

    # ===== Tallies =====

    def load_tallies(self) -> list[TallyRecord]:
        """
        Load every tally row.

        Returns:
            List of records, empty if the file did not exist

        Raises:
            StorageError: If the file is unreadable or any row is malformed
        """
        rows = self._read_rows(self.tally_path, TALLY_HEADER)

        records = []
        for line_no, row in rows:
            if len(row) < 3:
                raise StorageError(
                    f"{self.tally_path}:{line_no}: expected 3 columns, got {len(row)}"
                )
            try:
                records.append(
                    TallyRecord(
                        user_id=int(row[0]),
                        user_name=row[1] or UNKNOWN_USER_NAME,
                        count=int(row[2]),
                    )
                )
            except ValueError as e:
                raise StorageError(f"{self.tally_path}:{line_no}: {e}") from e

        logger.info(f"Loaded {len(records)} tallies from {self.tally_path}")
        return records

    def save_tallies(self, records: Iterable[TallyRecord]) -> None:
        """
        Overwrite the tally file with the given records.

        Raises:
            StorageError: If the file cannot be written
        """
        self._write_rows(
            self.tally_path,
            TALLY_HEADER,
            ([r.user_id, r.user_name, r.count] for r in records),
        )
        logger.debug(f"Saved tallies to {self.tally_path}")

    # ===== Opt-outs =====

    def load_opt_outs(self) -> set[int]:
        """
        Load the opted-out user IDs.

        Returns:
            Set of user IDs, empty if the file did not exist

        Raises:
            StorageError: If the file is unreadable or any row is malformed
        """
        rows = self._read_rows(self.ignored_path, IGNORED_HEADER)

        user_ids = set()
        for line_no, row in rows:
            try:
                user_ids.add(int(row[0]))
            except ValueError as e:
                raise StorageError(f"{self.ignored_path}:{line_no}: {e}") from e

        logger.info(f"Loaded {len(user_ids)} ignored users from {self.ignored_path}")
        return user_ids

    def save_opt_outs(self, user_ids: Iterable[int]) -> None:
        """
        Overwrite the opt-out file with the given user IDs.

        Raises:
            StorageError: If the file cannot be written
        """
        self._write_rows(
            self.ignored_path,
            IGNORED_HEADER,
            ([user_id] for user_id in sorted(user_ids)),
        )
        logger.debug(f"Saved ignored users to {self.ignored_path}")

    # ===== Helpers =====

    def _read_rows(self, path: Path, header: list[str]) -> list[tuple[int, list[str]]]:
        """Return (line number, row) for each non-blank data row."""
        if not path.exists():
            self._write_rows(path, header, [])
            logger.info(f"Created {path} with headers")
            return []

        try:
            with path.open("r", newline="", encoding="utf-8") as f:
                reader = csv.reader(f)
                next(reader, None)  # header
                return [(reader.line_num, row) for row in reader if any(cell.strip() for cell in row)]
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    def _write_rows(self, path: Path, header: list[str], rows: Iterable[list]) -> None:
        try:
            with path.open("w", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                writer.writerow(header)
                writer.writerows(rows)
        except (OSError, csv.Error) as e:
            raise StorageError(f"Could not write {path}: {e}") from e
