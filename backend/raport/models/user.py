"""
Signed-in user, modelled as a sum type discriminated on ``role``.

- AdminUser: full data management rights
- Teacher: a subject teacher (the roster record itself), may grade its subjects
- HomeroomUser: a homeroom teacher, sees reports for one class
"""

from typing import Annotated, Literal, Union
from pydantic import Field
from raport.models.base import DomainModel
from raport.models.teacher import Teacher


class AdminUser(DomainModel):
    id: str
    name: str
    role: Literal["admin"] = "admin"


class HomeroomUser(DomainModel):
    id: str
    name: str
    class_name: str = Field(..., alias="class")
    role: Literal["homeroom"] = "homeroom"


User = Annotated[Union[AdminUser, Teacher, HomeroomUser], Field(discriminator="role")]
