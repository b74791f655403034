from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from django.utils import timezone


@dataclass(frozen=True)
class HistoryEntry:
    """Uma linha do histórico de um lead. Nunca é alterada depois de gravada."""
    action: str
    user_id: Optional[int]
    user_name: str
    timestamp: str = field(default_factory=lambda: timezone.now().isoformat())
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    note: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None

    @classmethod
    def by(cls, actor, action, **kwargs):
        return cls(
            action=action,
            user_id=actor.pk if actor else None,
            user_name=actor.display_name if actor else 'Sistema',
            **kwargs,
        )

    def as_dict(self):
        return {k: v for k, v in asdict(self).items() if v is not None}


def assignment_entry(actor, previous, target):
    previous_name = previous.display_name if previous else 'Ninguém'
    return HistoryEntry.by(
        actor, 'assigned',
        note=f"Lead transferido de {previous_name} para {target.display_name}",
        payload={
            'assignment': {
                'from_user_id': previous.pk if previous else None,
                'from_user_name': previous_name,
                'to_user_id': target.pk,
                'to_user_name': target.display_name,
            }
        },
    )
