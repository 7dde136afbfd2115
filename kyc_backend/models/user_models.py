from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class UserModel(BaseModel):
    """
    Represents a registered user in the 'users' collection, as returned by the API.
    The image fields only appear once the matching upload has happened.
    """
    id: str = Field(..., description="Store-assigned unique key of the user.")
    firstName: str
    lastName: str
    email: str
    phoneCountryCode: str
    telephone: str
    idType: str
    idNumber: str
    department: str
    municipality: str
    direction: str
    monthlyEarns: float
    documentImageUrl: Optional[List[str]] = Field(None, description="Identity document images, in upload order.")
    selfieImage: Optional[str] = Field(None, description="URL of the most recent selfie.")
    documentUrl: Optional[str] = Field(None, description="Fresh URL of the requested document image, when asked for.")
    createdAt: Optional[str] = Field(None, description="Timestamp of when the user was registered.")
    updatedAt: Optional[str] = Field(None, description="Timestamp of when the user was last updated.")

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "id": "66a3f1c2e4b0a1b2c3d4e5f6",
                "firstName": "Ana",
                "lastName": "Gomez",
                "email": "ana.gomez@mail.com",
                "phoneCountryCode": "+503",
                "telephone": "71234567",
                "idType": "DUI",
                "idNumber": "012345678",
                "department": "San Salvador",
                "municipality": "Soyapango",
                "direction": "Colonia Las Flores, casa 12",
                "monthlyEarns": 1500.5,
                "documentImageUrl": ["https://bucket.s3.amazonaws.com/ID_Documents/66a3f1c2e4b0a1b2c3d4e5f6-front"],
                "createdAt": "2025-07-26T10:00:00+00:00",
                "updatedAt": "2025-07-28T14:30:00+00:00"
            }
        },
    )


class RegisterUserResponse(BaseModel):
    message: str
    id: str


class ImageUploadResponse(BaseModel):
    message: str
    imageUrl: str


class FaceDetectionResponse(BaseModel):
    validFace: bool
