"""
WorkForce - Organization User Schemas
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class InviteUserRequest(BaseModel):
    """
    Staff invitation.

    Email and orgId are checked by the service so that their absence is
    answered with the usual 200 error payload.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None
    org_id: Optional[str] = None
