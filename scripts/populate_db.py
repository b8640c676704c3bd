import sys
import os

# Add the project root directory to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlmodel import Session
from datetime import datetime, timedelta, timezone
import random

from app.config import PLACEHOLDER_IMAGE_URL
from app.models.business import Business
from app.models.submission import Submission, SubmissionStatus
from app.services.businesses import create_business
from app.services.database import create_db_and_tables, engine
from app.services.record_store import RecordStore
from app.services.votes import cast_vote

# Test data
OWNER_ID = "owner-demo"
VOTER_IDS = [f"voter-{i}" for i in range(1, 9)]

test_business = {"name": "Trailhead Outfitters", "tagline": "Gear ideas from people who actually hike"}

test_ideas = [
    {"title": "Ultralight rain kilt", "description": "Packs smaller than a fist, snaps onto a hip belt."},
    {"title": "Refillable fuel canister", "description": "Stop throwing away half-empty canisters."},
    {"title": "Trekking pole camera mount", "description": "Turn a pole into a monopod."},
    {"title": "Bear can with built-in seat", "description": "It is already the camp chair, make it comfortable."},
    {"title": "Modular first aid pouches", "description": "Colour-coded refills by injury type."},
    {"title": "Solar lantern that doubles as a tent hook", "description": None},
]

def create_demo_business(store: RecordStore) -> Business:
    existing = store.get_business_by_owner(OWNER_ID)
    if existing:
        print(f"Business already exists: {existing.slug}")
        return existing
    return create_business(store, OWNER_ID, test_business["name"], test_business["tagline"])

def create_ideas(store: RecordStore, business: Business) -> list[Submission]:
    ideas = []
    for offset, idea in enumerate(test_ideas):
        # Spread creation times over the last few weeks so ties show recency order
        created_at = datetime.now(timezone.utc) - timedelta(days=len(test_ideas) - offset)
        submission = Submission(
            business_id=business.business_id,
            title=idea["title"],
            description=idea["description"],
            image_url=PLACEHOLDER_IMAGE_URL,
            status=random.choice(list(SubmissionStatus)),
            submitted_by=random.choice(VOTER_IDS),
            created_at=created_at,
            updated_at=created_at
        )
        ideas.append(store.insert_submission(submission))
    return ideas

def create_votes(store: RecordStore, ideas: list[Submission]):
    for idea in ideas:
        for voter_id in random.sample(VOTER_IDS, random.randint(0, len(VOTER_IDS))):
            cast_vote(store, idea.submission_id, voter_id)

def main():
    create_db_and_tables()

    with Session(engine) as session:
        store = RecordStore(session)

        business = create_demo_business(store)
        print(f"Using business /{business.slug}")

        ideas = create_ideas(store, business)
        print(f"Created {len(ideas)} ideas")

        create_votes(store, ideas)
        print("Created votes")

if __name__ == "__main__":
    main()
