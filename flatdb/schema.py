"""
Table schema - ordered column names of one table file
"""

from typing import List
from dataclasses import dataclass, field

from .errors import ResolutionError


@dataclass
class TableSchema:
    """Table metadata: column names in file order"""
    table_name: str
    columns: List[str]
    _positions: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        """Build the name -> position map, rejecting duplicate names"""
        self._positions = {}
        for i, name in enumerate(self.columns):
            if name in self._positions:
                raise ValueError(f"Duplicate column '{name}' in table '{self.table_name}'")
            self._positions[name] = i

    def __len__(self):
        return len(self.columns)

    def get_column_index(self, name: str, clause: str = '') -> int:
        """Get column position by name"""
        index = self._positions.get(name)
        if index is None:
            where = f" (in {clause})" if clause else ''
            raise ResolutionError(
                f"Column '{name}' does not exist in table '{self.table_name}'{where}",
                name, self.table_name, clause
            )
        return index
