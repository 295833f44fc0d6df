from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

AspectRatio = Literal["1:1", "2:3", "3:2", "3:4", "4:3", "4:5", "5:4", "9:16", "16:9", "21:9"]

DEFAULT_INPUT_MIME_TYPE = "image/jpeg"


class GenerationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: Optional[str] = None
    original_url: Optional[str] = Field(default=None, alias="originalUrl")
    input_image_url: Optional[str] = Field(default=None, alias="inputImageUrl")
    input_image_base64: Optional[str] = Field(default=None, alias="inputImageBase64")
    input_image_mime_type: Optional[str] = Field(default=None, alias="inputImageMimeType")
    sample_count: Optional[float] = Field(default=None, alias="sampleCount", allow_inf_nan=False)
    aspect_ratio: Optional[AspectRatio] = Field(default=None, alias="aspectRatio")
    generation_id: Optional[str] = Field(default=None, alias="generationId")


class CallableRequest(BaseModel):
    data: GenerationRequest


class GenerationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    images: Optional[List[str]] = None
    image_urls: Optional[List[str]] = Field(default=None, alias="imageUrls")
    generation_id: Optional[str] = Field(default=None, alias="generationId")
    error: Optional[str] = None


class CallableResponse(BaseModel):
    result: GenerationResponse
