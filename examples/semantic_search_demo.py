"""
Semantic search example demonstrating indexing and multi-domain search.
"""

import asyncio
from datetime import datetime

from localsense import SearchConfig, SearchScope, create_search_service
from localsense.search import NotificationRecord, UsageInsightRecord


async def main():
    # Keep everything in memory; set database_path to persist the index
    config = SearchConfig(default_threshold=0.2)
    service = create_search_service(config)
    await service.initialize()

    # Index a few records from different sources
    await service.add_document(
        "notes_1",
        "Trip planning",
        "Book the train to Lisbon and reserve a table for Friday dinner",
        "manual",
    )
    await service.add_conversation_message("m1", "Remind me to call the landlord about the heating")
    await service.indexer.index_notifications([
        NotificationRecord(
            id="1",
            title="Calendar",
            text="Dinner reservation confirmed for Friday",
            package_name="com.calendar",
            timestamp=datetime.now(),
        ),
    ])
    await service.indexer.index_usage_insights([
        UsageInsightRecord(
            id="1",
            title="Maps usage",
            description="You searched for train stations three times this week",
            type="app_usage",
            app="Maps",
        ),
    ])

    # Print every search as it completes
    service.subscribe(lambda results: print(f"[{results.total_results} results] {results.query}"))

    # Search every domain at once
    results = await service.search("friday dinner")
    for result in results.merged():
        print(f"  {result.score:.3f} {result.metadata.get('title', '')}: {result.content}")

    # Search a single domain
    results = await service.search("heating", scope=SearchScope.CONVERSATIONS)
    for result in results.conversation_results:
        print(f"  {result.score:.3f} {result.content}")

    print(f"Suggestions: {await service.get_personalized_suggestions()}")

    analytics = await service.get_search_analytics()
    print(f"Searches: {analytics.total_searches}, top queries: {analytics.top_queries}")

    stats = service.get_index_statistics()
    print(f"Indexed {stats.total_documents} documents in {stats.total_chunks} chunks")

    await service.close()


if __name__ == "__main__":
    asyncio.run(main())
