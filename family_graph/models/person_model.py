from pydantic import BaseModel
from typing import Optional, Literal
from datetime import date

Gender = Literal["male", "female", "other"]
MaritalStatus = Literal["single", "married", "divorced", "widowed"]

class Person(BaseModel):
    id: str
    name: str
    gender: Gender = "other"
    dob: Optional[date] = None
    dod: Optional[date] = None
    isLiving: bool = True
    phone: Optional[str] = None
    email: Optional[str] = None
    photoUrl: Optional[str] = None
    occupation: Optional[str] = None
    community: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    maritalStatus: Optional[MaritalStatus] = None
    createdByUserId: Optional[str] = None
    authUserId: Optional[str] = None
    verified: bool = False

class PersonSummary(BaseModel):
    id: str
    name: str
    gender: Gender = "other"

    @classmethod
    def of(cls, person: Person) -> "PersonSummary":
        return cls(id=person.id, name=person.name, gender=person.gender)
