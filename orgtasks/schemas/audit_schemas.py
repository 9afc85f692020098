from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    """Audit entry response"""

    id: str
    user_id: str
    action: str
    resource: str
    resource_id: str
    details: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}
