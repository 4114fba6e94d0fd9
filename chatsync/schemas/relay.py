"""Wire models of the notification relay routes. Field names are camelCase on the wire."""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional


class RelayModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SendNotificationRequest(RelayModel):
    receiver_id: str
    sender_id: str
    sender_name: str
    message: str
    chat_room_id: str


class SendNotificationResponse(RelayModel):
    success: bool = True
    message_id: str
    message: str = "Notification sent successfully"


class RelayFailure(RelayModel):
    success: bool = False
    message: str
    error: Optional[str] = None


class TokenResponse(RelayModel):
    user_id: str
    fcm_token: Optional[str] = None


class TokenUpdate(RelayModel):
    fcm_token: Optional[str] = None


class TokenUpdateResponse(RelayModel):
    success: bool = True
    message: str = "FCM token updated successfully"


class LatestVersion(RelayModel):
    version: str
    version_code: int
    download_url: str
    release_notes: List[str] = Field(default_factory=list)
    is_force_update: bool = False
    min_version: str


class AppVersionResponse(RelayModel):
    success: bool = True
    current_version: str
    latest_version: LatestVersion
