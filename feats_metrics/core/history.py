"""Analysis history — a JSON-file key-value store.

Records are keyed by id. `put` replaces a record with the same id;
`list_recent` returns records newest first. The file is rewritten whole on
every put (via a temp file + rename), which is fine for a personal history.
"""

import json
import os
import time
import uuid
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from feats_metrics.core.errors import HistoryError


@dataclass
class AnalysisRecord:
    id: str
    image_path: str
    timestamp: float
    metrics: dict[str, Any]
    template_path: str | None = None
    user_name: str | None = None
    emotion: dict[str, Any] | None = None
    narrative: dict[str, Any] | None = None

    @classmethod
    def new(cls, image_path: str, metrics: dict[str, Any], **extra: Any) -> 'AnalysisRecord':
        return cls(id=str(uuid.uuid4()), image_path=image_path, timestamp=time.time(), metrics=metrics, **extra)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'AnalysisRecord':
        return cls(
            id=data['id'],
            image_path=data.get('image_path', ''),
            timestamp=float(data.get('timestamp', 0.0)),
            metrics=data.get('metrics', {}),
            template_path=data.get('template_path'),
            user_name=data.get('user_name'),
            emotion=data.get('emotion'),
            narrative=data.get('narrative'),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class HistoryStore:
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise HistoryError(f'cannot read history {self.path}: {e}') from e
        items = data.get('records') if isinstance(data, dict) else None
        if not isinstance(items, list) or not all(isinstance(i, dict) and 'id' in i for i in items):
            raise HistoryError(f'{self.path} is not a feats-tool history file')
        return {item['id']: item for item in items}

    def _save(self, records: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + '.tmp')
        tmp.write_text(json.dumps({'records': list(records.values())}, indent=2), encoding='utf-8')
        os.replace(tmp, self.path)

    def put(self, record: AnalysisRecord) -> None:
        records = self._load()
        records[record.id] = record.to_dict()
        self._save(records)

    def get(self, record_id: str) -> AnalysisRecord | None:
        item = self._load().get(record_id)
        return AnalysisRecord.from_dict(item) if item else None

    def list_recent(self, limit: int | None = None) -> list[AnalysisRecord]:
        """All records, newest first."""
        records = sorted(
            (AnalysisRecord.from_dict(item) for item in self._load().values()),
            key=lambda r: -r.timestamp,
        )
        return records[:limit] if limit is not None else records
