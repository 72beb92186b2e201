"""
Natural-language kinship labels for relationship paths.

A path is walked from the start person; each label names what the *next*
person is to the current one. ``[FATHER_OF, MOTHER_OF]`` therefore walks up
to the father and then to his mother, and describes the end person as the
start person's paternal grandmother.

Genetic similarity is a rough per-generation halving, not a coefficient of
relationship; pedigree collapse and double descent are ignored.
"""
from typing import Optional, Sequence, Union

from family_graph.models.graph_model import RelationshipResult
from family_graph.models.relationship_model import RelationshipType as R

ASCEND = "ascend"
DESCEND = "descend"
MARRIAGE = "marriage"
SIBLING = "sibling"

_KIND = {
    R.FATHER_OF: ASCEND,
    R.MOTHER_OF: ASCEND,
    R.PARENT_OF: ASCEND,
    R.CHILD_OF: DESCEND,
    R.SPOUSE_OF: MARRIAGE,
    R.SIBLING_OF: SIBLING,
}

_COUSINS = {
    (1, 0): "cousin",
    (1, 1): "first cousin once removed",
    (1, 2): "first cousin twice removed",
    (2, 0): "second cousin",
    (2, 1): "second cousin once removed",
    (2, 2): "second cousin twice removed",
    (3, 0): "third cousin",
    (3, 1): "third cousin once removed",
    (3, 2): "third cousin twice removed",
}

Step = Union[R, str]

def _coerce(step: Step) -> Optional[R]:
    if isinstance(step, R):
        return step
    try:
        return R(step)
    except ValueError:
        return None

def _genderize(gender: Optional[str], male: str, female: str, neutral: str) -> str:
    if gender == "male":
        return male
    if gender == "female":
        return female
    return neutral

def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"

def _removal_phrase(removal: int) -> str:
    if removal == 1:
        return "once removed"
    if removal == 2:
        return "twice removed"
    return f"{removal} times removed"

def cousin_phrase(degree: int, removal: int) -> str:
    if (degree, removal) in _COUSINS:
        return _COUSINS[(degree, removal)]
    base = f"{_ordinal(degree)} cousin"
    return base if removal == 0 else f"{base}, {_removal_phrase(removal)}"

def _end_gender(steps: Sequence[R], end_gender: Optional[str]) -> Optional[str]:
    # a gendered last edge says more than a missing or "other" gender
    if steps[-1] is R.FATHER_OF:
        return "male"
    if steps[-1] is R.MOTHER_OF:
        return "female"
    return end_gender

def _side(steps: Sequence[R]) -> str:
    if steps[0] is R.FATHER_OF:
        return "paternal "
    if steps[0] is R.MOTHER_OF:
        return "maternal "
    return ""

def _direct(step: Optional[R], gender: Optional[str]) -> RelationshipResult:
    if step in (R.FATHER_OF, R.MOTHER_OF, R.PARENT_OF):
        desc = _genderize(_end_gender([step], gender), "father", "mother", "parent")
        return RelationshipResult(description=desc, category="immediate", generationsUp=1,
                                  isBloodRelation=True, geneticSimilarity=50)
    if step is R.CHILD_OF:
        return RelationshipResult(description=_genderize(gender, "son", "daughter", "child"),
                                  category="immediate", generationsDown=1,
                                  isBloodRelation=True, geneticSimilarity=50)
    if step is R.SPOUSE_OF:
        return RelationshipResult(description=_genderize(gender, "husband", "wife", "spouse"),
                                  category="immediate", isBloodRelation=False, geneticSimilarity=0)
    if step is R.SIBLING_OF:
        return RelationshipResult(description=_genderize(gender, "brother", "sister", "sibling"),
                                  category="immediate", isBloodRelation=True, geneticSimilarity=50)
    return RelationshipResult(description="relative", category="extended",
                              isBloodRelation=True, geneticSimilarity=0)

def _lineal(kinds: list[str], steps: Sequence[R], gender: Optional[str]) -> Optional[str]:
    n = len(kinds)
    if all(k == ASCEND for k in kinds):
        greats = "great-" * (n - 2)
        return _side(steps) + _genderize(
            gender, f"{greats}grandfather", f"{greats}grandmother", f"{greats}grandparent"
        )
    if all(k == DESCEND for k in kinds):
        greats = "great-" * (n - 2)
        return _genderize(gender, f"{greats}grandson", f"{greats}granddaughter", f"{greats}grandchild")
    return None

def blood_shape(kinds: list[str]) -> Optional[tuple[int, int]]:
    """Effective ``(up, down)`` of a path that climbs, peaks once, then descends.

    A sibling step is the peak itself: it stands for the shared parents, so it
    counts as one step up and one step down. Marriage steps, a second peak or
    climbing again after the peak disqualify the path.
    """
    up = down = 0
    peaked = False
    for kind in kinds:
        if kind == ASCEND:
            if peaked:
                return None
            up += 1
        elif kind == SIBLING:
            if peaked:
                return None
            peaked = True
            up += 1
            down += 1
        elif kind == DESCEND:
            peaked = True
            down += 1
        else:
            return None
    return up, down

def _collateral(kinds: list[str], steps: Sequence[R], gender: Optional[str]) -> Optional[str]:
    shape = blood_shape(kinds)
    if shape is None:
        return None
    up, down = shape
    if up == 1 and down == 1:
        return _genderize(gender, "brother", "sister", "sibling")
    if down == 1 and up >= 2:
        greats = "great-" * (up - 2)
        return _side(steps) + _genderize(gender, f"{greats}uncle", f"{greats}aunt", f"{greats}aunt/uncle")
    if up == 1 and down >= 2:
        greats = "great-" * (down - 2)
        return _genderize(gender, f"{greats}nephew", f"{greats}niece", f"{greats}nibling")
    return None

def _cousin(kinds: list[str]) -> Optional[str]:
    shape = blood_shape(kinds)
    if shape is None:
        return None
    up, down = shape
    degree = min(up, down) - 1
    removal = abs(up - down)
    if degree < 1:
        return None
    return cousin_phrase(degree, removal)

_IN_LAWS = {
    (MARRIAGE, ASCEND): ("father-in-law", "mother-in-law", "parent-in-law"),
    (DESCEND, MARRIAGE): ("son-in-law", "daughter-in-law", "child-in-law"),
    (MARRIAGE, SIBLING): ("brother-in-law", "sister-in-law", "sibling-in-law"),
    (SIBLING, MARRIAGE): ("brother-in-law", "sister-in-law", "sibling-in-law"),
    (ASCEND, MARRIAGE): ("stepfather", "stepmother", "step-parent"),
    (MARRIAGE, DESCEND): ("stepson", "stepdaughter", "stepchild"),
}

def _in_law(kinds: list[str], gender: Optional[str]) -> str:
    names = _IN_LAWS.get(tuple(kinds))
    if names:
        return _genderize(gender, *names)
    return "relative by marriage"

def _generic(up: int, down: int) -> str:
    if up > 0 and down == 0:
        return f"ancestor ({up} generation{'' if up == 1 else 's'} up)"
    if down > 0 and up == 0:
        return f"descendant ({down} generation{'' if down == 1 else 's'} down)"
    if up > 0 and down > 0:
        return f"distant relative ({up} up, {down} down)"
    return "relative"

def categorize(up: int, down: int, marriages: int) -> str:
    if marriages > 0 and up == 0 and down == 0:
        return "non-blood"
    if up <= 1 and down <= 1:
        return "immediate"
    if up <= 2 and down <= 2:
        return "extended"
    return "distant"

def genetic_similarity(up: int, down: int, marriages: int) -> float:
    if marriages > 0:
        return 0.0
    distance = up + down
    if distance <= 1:
        return 50.0
    if distance == 2:
        return 25.0
    return max(0.1, min(50.0, 50 / 2 ** (distance - 1)))

def calculate_relationship(path: Sequence[Step], start_gender: Optional[str],
                           end_gender: Optional[str]) -> RelationshipResult:
    """Describe the end of ``path`` relative to its start.

    ``start_gender`` is accepted for symmetry with callers that know both
    endpoints; English kinship terms only depend on the end person.
    """
    if not path:
        return RelationshipResult(description="yourself", category="immediate",
                                  isBloodRelation=True, geneticSimilarity=50)

    steps = [_coerce(s) for s in path]
    if len(steps) == 1:
        return _direct(steps[0], end_gender)

    kinds = [_KIND.get(s) for s in steps]
    up = kinds.count(ASCEND)
    down = kinds.count(DESCEND)
    marriages = kinds.count(MARRIAGE)

    if None in kinds:
        description = "relative"
    else:
        gender = _end_gender(steps, end_gender)
        description = (
            _lineal(kinds, steps, gender)
            or _collateral(kinds, steps, gender)
            or _cousin(kinds)
            or (_in_law(kinds, gender) if marriages else None)
            or _generic(up, down)
        )

    return RelationshipResult(
        description=description,
        category=categorize(up, down, marriages),
        generationsUp=up,
        generationsDown=down,
        isBloodRelation=marriages == 0,
        geneticSimilarity=genetic_similarity(up, down, marriages),
    )
