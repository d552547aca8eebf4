"""
Points-milestone quests
"""
from typing import List, Tuple

from lingo.schemas.progress import Quest, QuestList

QUESTS: List[Tuple[str, int]] = [
    ("Earn 20 XP", 20),
    ("Earn 50 XP", 50),
    ("Earn 100 XP", 100),
    ("Earn 500 XP", 500),
    ("Earn 1000 XP", 1000),
]


class QuestService:

    def get_quests(self, points: int) -> QuestList:
        quests = [
            Quest(
                title=title,
                value=value,
                progress=min(100, int(points * 100 / value)),
                completed=points >= value
            )
            for title, value in QUESTS
        ]
        return QuestList(points=points, quests=quests)


# Global instance
quest_service = QuestService()
