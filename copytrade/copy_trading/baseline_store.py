"""
Trader baseline persistence.

Keeps the trader's last raw snapshot on disk so a restart does not lose
change detection. A missing or unreadable file means a cold start.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .models import AccountSnapshot

logger = logging.getLogger(__name__)


class JsonBaselineStore:
    """Stores one AccountSnapshot as JSON"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[AccountSnapshot]:
        """Load the saved baseline, or None for a cold start"""
        if not self.path.exists():
            return None

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            snapshot = AccountSnapshot.from_dict(data["snapshot"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable baseline {self.path}: {e}")
            return None

        logger.info(f"Loaded trader baseline with {len(snapshot.positions)} positions")
        return snapshot

    def save(self, snapshot: AccountSnapshot) -> None:
        """Persist the baseline, replacing any previous one"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "snapshot": snapshot.to_dict(),
            "updated_at": datetime.now().isoformat(),
        }
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        tmp.replace(self.path)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
