# backend/schemas.py

from pydantic import BaseModel, ConfigDict, EmailStr
from typing import List, Optional

# ---------- User-related schemas ----------

class RegisterRequest(BaseModel):
    # Optional so that a missing field is reported as "All fields are required"
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None

class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

class UserOut(BaseModel):
    id: int
    name: str
    email: EmailStr

    model_config = ConfigDict(from_attributes=True)

class AuthResponse(BaseModel):
    user: UserOut
    token: str

class TokenData(BaseModel):
    user_id: int
    email: str


# ---------- Chat schemas ----------

class ChatMessageIn(BaseModel):
    role: str  # "system", "user" or "assistant"
    content: str

class ChatRequest(BaseModel):
    provider: Optional[str] = "groq"
    message: Optional[str] = None
    messages: Optional[List[ChatMessageIn]] = None

class ChatResponse(BaseModel):
    reply: str
    provider: str


# ---------- Image schemas ----------

class ImageRequest(BaseModel):
    prompt: Optional[str] = None

class ImageResponse(BaseModel):
    imageBase64: str


# ---------- Weather schemas ----------

class WeatherRequest(BaseModel):
    city: Optional[str] = None

class WeatherOut(BaseModel):
    city: Optional[str] = None
    country: Optional[str] = None
    temp: Optional[float] = None
    feels_like: Optional[float] = None
    humidity: Optional[int] = None
    description: Optional[str] = None
    icon: Optional[str] = None
