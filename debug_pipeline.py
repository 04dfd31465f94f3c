# debug_pipeline.py
import asyncio
import json

from trip_pipeline.orchestrator import TripPipeline
from trip_pipeline.schemas import TripRequest


async def main():
    payload = {
        "destination": "Kyoto",
        "startDate": "2025-10-10",
        "endDate": "2025-10-13",
        "interests": ["Culture", "Food", "Nature"],
        "budget": "mid-range",
        "pace": "moderate",
    }

    pipeline = TripPipeline.from_settings()
    print("➡️ Provider status:\n")
    print(json.dumps(pipeline.status(), indent=2))

    # Call the pipeline directly
    result = await pipeline.plan(TripRequest.model_validate(payload), user_id="debug-user")
    print("\n➡️ Pipeline returned:\n")
    print(json.dumps(result.model_dump(mode="json"), indent=2))


if __name__ == "__main__":
    asyncio.run(main())
