from pydantic import BaseModel, Field, computed_field
from typing import Optional, List, Dict, Literal
from family_graph.models.person_model import Person, PersonSummary, MaritalStatus
from family_graph.models.relationship_model import Relationship, RelationshipType

Category = Literal["immediate", "extended", "distant", "non-blood"]

class TreeOut(BaseModel):
    rootPersonId: str
    persons: List[Person] = []
    edgesByPerson: Dict[str, List[Relationship]] = {}

class SearchFilters(BaseModel):
    query: Optional[str] = None  # matches name or occupation
    name: Optional[str] = None
    occupation: Optional[str] = None
    location: Optional[str] = None  # matches community, city or state
    maritalStatus: Optional[MaritalStatus] = None

class SearchHit(BaseModel):
    person: Person
    depth: int
    path: List[str]
    pathNames: List[str] = []

    @computed_field
    @property
    def connectionPath(self) -> str:
        return " → ".join(self.pathNames)

class SearchOut(BaseModel):
    results: List[SearchHit]
    total: int
    depth: int

class RelationshipResult(BaseModel):
    description: str
    category: Category
    generationsUp: int = 0
    generationsDown: int = 0
    isBloodRelation: bool = True
    geneticSimilarity: float = 0.0

class PathStep(BaseModel):
    """One hop of a connection path: ``fromPersonId`` is ``type`` of ``toPersonId``."""
    fromPersonId: str
    toPersonId: str
    type: RelationshipType

class ConnectionPath(BaseModel):
    path: List[str]
    names: List[str] = []
    relationships: List[PathStep] = []
    depth: int
    relationship: Optional[RelationshipResult] = None

class CommonAncestor(BaseModel):
    person: PersonSummary
    distanceFromA: int
    distanceFromB: int

class ConnectionStatistics(BaseModel):
    nodesExplored: int = 0
    storeCalls: int = 0
    expansionsFromA: int = 0
    expansionsFromB: int = 0
    shortestDistance: Optional[int] = None
    pathsFound: int = 0
    elapsedMs: float = 0.0

class ConnectionResult(BaseModel):
    connected: bool
    personA: PersonSummary
    personB: PersonSummary
    paths: List[ConnectionPath] = []
    commonAncestors: List[CommonAncestor] = []
    statistics: ConnectionStatistics = Field(default_factory=ConnectionStatistics)
