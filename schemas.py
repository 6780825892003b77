"""
Database Schemas for the Planora marketplace

Stored documents are described with Pydantic models. Each class maps to
one of the collections below; ``created_at`` is stamped by the store.

We will use these collections:
- users: clients looking for professionals
- professionals: architects, designers and contractors with rating aggregates
- projects: project listings with uploaded images
- reviews: client reviews of professionals
- requirements: free-form requirement submissions
- cost_estimations: audit records of computed estimates
- chat_messages: chatbot conversation log
- bookings: consultation requests
- collaborations: files shared on a project
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

Role = Literal["user", "professional"]

class User(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(..., description="BCrypt hash of password")
    role: Role = Field("user")
    phone: Optional[str] = None
    location: Optional[str] = None


class Professional(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(..., description="BCrypt hash of password")
    specialization: Optional[str] = None
    experience_years: int = 0
    hourly_rate: float = 0.0
    degree_document: Optional[str] = None
    is_verified: bool = False
    role: Role = Field("professional")
    rating: float = 0.0
    total_reviews: int = Field(0, ge=0)
    total_projects: int = Field(0, ge=0)
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    bio: Optional[str] = None


class Project(BaseModel):
    title: str
    slug: str
    category: Optional[str] = None
    location: Optional[str] = None
    area: Optional[str] = None
    budget: Optional[str] = None
    description: Optional[str] = None
    user_id: str
    images: List[str] = Field(default_factory=list)


class Review(BaseModel):
    user_id: str
    user_name: str
    professional_id: str
    project_id: Optional[str] = None
    rating: float = Field(..., ge=1, le=5)
    review_text: Optional[str] = None


class Requirement(BaseModel):
    model_config = ConfigDict(extra="allow")

    user_id: str
    status: str = "submitted"


class CostEstimate(BaseModel):
    user_id: str
    project_type: Optional[str] = None
    area: float
    location: Optional[str] = None
    quality_level: Optional[str] = None
    num_rooms: Optional[Any] = None
    material_cost: float
    labor_cost: float
    design_cost: float
    permit_cost: float
    total_cost: float


class ChatMessage(BaseModel):
    user_id: str
    message: str
    response: str
    context_type: Optional[str] = None


class Booking(BaseModel):
    user_id: str
    professional_id: str
    booking_date: Optional[str] = None
    booking_time: Optional[str] = None
    message: Optional[str] = None
    status: str = "pending"


class Collaboration(BaseModel):
    project_id: str
    uploader_type: Role
    uploader_id: str
    file_name: str
    file_path: str
    file_type: Optional[str] = None
    file_size: int = 0
    description: Optional[str] = None


def public_profile(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Stored account document without its password hash."""
    return {k: v for k, v in doc.items() if k != "password"}
