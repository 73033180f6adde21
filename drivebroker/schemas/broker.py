"""Request bodies of the broker endpoint, one model per action."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Action(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class UploadAction(_Action):
    action: Literal["upload"]
    file_name: str = Field(alias="fileName", min_length=1, max_length=255)
    file_type: str = Field(alias="fileType", min_length=1, max_length=255)


class DownloadAction(_Action):
    action: Literal["download"]
    key: str = Field(min_length=1, max_length=1024)
    file_name: str | None = Field(default=None, alias="fileName", max_length=255)


class DeleteAction(_Action):
    action: Literal["delete"]
    key: str = Field(min_length=1, max_length=1024)


PUBLIC_DOWNLOAD = "public_download"


class PublicDownloadAction(_Action):
    action: Literal["public_download"]
    token: str = Field(min_length=1, max_length=64)


BrokerAction = Annotated[
    Union[UploadAction, DownloadAction, DeleteAction, PublicDownloadAction],
    Field(discriminator="action"),
]

broker_action_adapter = TypeAdapter(BrokerAction)
