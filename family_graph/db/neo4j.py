from neo4j import AsyncGraphDatabase, AsyncDriver
from family_graph.core.config import settings
from family_graph.core.logging import get_logger

logger = get_logger(__name__)

class Neo4j:
    driver: AsyncDriver | None = None

neo4j = Neo4j()

SCHEMA_STATEMENTS = (
    "CREATE CONSTRAINT person_id_unique IF NOT EXISTS FOR (p:Person) REQUIRE p.id IS UNIQUE",
    "CREATE CONSTRAINT merge_request_id_unique IF NOT EXISTS FOR (m:MergeRequest) REQUIRE m.id IS UNIQUE",
    # duplicate detection looks persons up by normalized phone
    "CREATE INDEX person_phone IF NOT EXISTS FOR (p:Person) ON (p.phone)",
    "CREATE INDEX person_auth_user IF NOT EXISTS FOR (p:Person) ON (p.authUserId)",
)

async def connect_to_neo4j():
    neo4j.driver = AsyncGraphDatabase.driver(
        settings.NEO4J_URI,
        auth=(settings.NEO4J_USER, settings.NEO4J_PASSWORD),
    )
    async with neo4j.driver.session() as session:
        for statement in SCHEMA_STATEMENTS:
            await session.run(statement)
    logger.info("neo4j_connected", uri=settings.NEO4J_URI)
    return neo4j.driver

async def close_neo4j():
    if neo4j.driver:
        await neo4j.driver.close()
        neo4j.driver = None
