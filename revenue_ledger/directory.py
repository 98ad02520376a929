"""Read-only creator and campaign lookups owned by the surrounding platform."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

DEMO_CREATOR_ID = UUID("550e8400-e29b-41d4-a716-446655440000")
DEMO_SECOND_CREATOR_ID = UUID("660e8400-e29b-41d4-a716-446655440001")
DEMO_CAMPAIGN_ID = UUID("33333333-3333-3333-3333-333333333333")
DEMO_SECOND_CAMPAIGN_ID = UUID("44444444-4444-4444-4444-444444444444")


class InMemoryDirectory:
    def __init__(self, seed: bool = True):
        self.creators: dict[UUID, dict] = {}
        self.campaigns: dict[UUID, dict] = {}
        if seed:
            self._seed_data()

    def _seed_data(self):
        self.add_creator(DEMO_CREATOR_ID, name="Alex Creator", email="alex@example.com")
        self.add_creator(DEMO_SECOND_CREATOR_ID, name="Sam Maker", email="sam@example.com")
        self.add_campaign(DEMO_CAMPAIGN_ID, title="Bring Back Vinyl Sleeves", creator_id=DEMO_CREATOR_ID)
        self.add_campaign(DEMO_SECOND_CAMPAIGN_ID, title="Quieter Office Chairs", creator_id=DEMO_SECOND_CREATOR_ID)

    def add_creator(self, creator_id: UUID, name: str = "", email: Optional[str] = None) -> None:
        self.creators[creator_id] = {
            "id": creator_id, "name": name, "email": email,
            "created_at": datetime.now(timezone.utc),
        }

    def add_campaign(self, campaign_id: UUID, title: str, creator_id: Optional[UUID] = None) -> None:
        self.campaigns[campaign_id] = {
            "id": campaign_id, "title": title, "creator_id": creator_id,
        }

    def creator_exists(self, creator_id: UUID) -> bool:
        return creator_id in self.creators

    def campaign_exists(self, campaign_id: UUID) -> bool:
        return campaign_id in self.campaigns

    def campaign_title(self, campaign_id: UUID) -> Optional[str]:
        campaign = self.campaigns.get(campaign_id)
        return campaign["title"] if campaign else None
