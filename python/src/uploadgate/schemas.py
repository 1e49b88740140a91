"""Request and response bodies of the UploadGate HTTP API.

Field names are camelCase on the wire. Range checks on part numbers are left
to the coordinator so they apply to every caller, not only HTTP ones; part
numbers are strict integers, so JSON booleans, strings and floats are refused.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from uploadgate.models import PartDescriptor


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -- Requests -----------------------------------------------------------------


class StartMultipartRequest(_CamelModel):
    file_name: str = Field(min_length=1)


class PreSignedPartRequest(_CamelModel):
    upload_id: str = Field(min_length=1)
    part_number: StrictInt


class PartETag(_CamelModel):
    part_number: StrictInt
    etag: str = Field(validation_alias=AliasChoices("etag", "eTag", "ETag"))

    def to_descriptor(self) -> PartDescriptor:
        return PartDescriptor(part_number=self.part_number, etag=self.etag)


class CompleteMultipartRequest(_CamelModel):
    upload_id: str = Field(min_length=1)
    parts: list[PartETag] = Field(default_factory=list)


class PreSignedRequest(_CamelModel):
    file_name: str = Field(min_length=1)


# -- Responses ----------------------------------------------------------------


class StartMultipartResponse(_CamelModel):
    key: str
    upload_id: str


class PreSignedPartResponse(_CamelModel):
    url: str


class PreSignedResponse(_CamelModel):
    key: str
    url: str


class DirectUploadResponse(_CamelModel):
    file_id: str
