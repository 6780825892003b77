import logging
import math
from typing import Any, Dict, List, Optional, Union

from fastapi import Body, Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, EmailStr, Field

import config
from chatbot import reply as chatbot_reply
from database import DocumentStore, get_store
from design_ai import generate_design
from errors import ApiError, AuthenticationFailed, Conflict, InvalidInput, NotFound
from estimates import estimate, parse_area
from ratings import refresh_professional_rating
from schemas import (
    Booking as BookingSchema,
    ChatMessage as ChatMessageSchema,
    Collaboration as CollaborationSchema,
    CostEstimate as CostEstimateSchema,
    Professional as ProfessionalSchema,
    Project as ProjectSchema,
    Requirement as RequirementSchema,
    Review as ReviewSchema,
    Role,
    User as UserSchema,
    public_profile,
)
from security import (
    Identity,
    create_access_token,
    ensure_owner,
    get_current_identity,
    hash_password,
    verify_password,
)
from uploads import remove_upload, save_upload

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

MAX_PROJECT_IMAGES = 10

# App and CORS
app = FastAPI(title="Planora Marketplace API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.mount("/uploads", StaticFiles(directory=config.UPLOAD_DIR, check_dir=False), name="uploads")


# Error envelope

@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:]) or "request"
    message = f"{field}: {first.get('msg', 'invalid value')}"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


# Helpers

def account_collection(role: Optional[str]) -> str:
    return "professionals" if role == "professional" else "users"


def identity_for(doc: Dict[str, Any], role: str) -> Identity:
    return Identity(id=doc["id"], email=doc["email"], name=doc["name"], role=role)


def to_float(field: str, value: Optional[str], default: float = 0.0) -> float:
    """Parse a numeric form field; blank means not provided."""
    if value is None or not value.strip():
        return default
    try:
        number = float(value)
    except ValueError:
        raise InvalidInput(f"{field} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise InvalidInput(f"{field} must be a finite number")
    return number


def to_int(field: str, value: Optional[str], default: int = 0) -> int:
    return int(to_float(field, value, default))



def has_file(upload: Optional[UploadFile]) -> bool:
    return upload is not None and bool(upload.filename)


def stored_path(upload: UploadFile) -> str:
    return save_upload(upload, config.UPLOAD_DIR).path


# Request Models
class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)
    phone: Optional[str] = None
    location: Optional[str] = None

class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    role: Optional[Role] = None

class UserUpdateRequest(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None

class ReviewRequest(BaseModel):
    professional_id: str
    project_id: Optional[str] = None
    rating: float = Field(..., ge=1, le=5)
    review_text: Optional[str] = None

class CostEstimateRequest(BaseModel):
    project_type: Optional[str] = None
    area: Optional[Union[float, str]] = None
    location: Optional[str] = None
    quality_level: Optional[str] = None
    num_rooms: Optional[Union[int, str]] = None

class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    context_type: Optional[str] = None

class BookingRequest(BaseModel):
    professional_id: str
    booking_date: Optional[str] = None
    booking_time: Optional[str] = None
    message: Optional[str] = None


# Auth Routes
@app.post("/api/register")
def register(payload: RegisterRequest, store: DocumentStore = Depends(get_store)):
    if store.query("users", [("email", "==", payload.email)], limit=1):
        raise Conflict("User already exists")
    user_doc = UserSchema(
        name=payload.name,
        email=payload.email,
        password=hash_password(payload.password),
        phone=payload.phone or None,
        location=payload.location or None,
    ).model_dump(exclude_none=True)
    user_id = store.add("users", user_doc)
    identity = Identity(id=user_id, email=payload.email, name=payload.name, role="user")
    logger.info(f"Registered user {user_id}")
    return {
        "message": "User registered successfully",
        "token": create_access_token(identity),
        "user": identity.model_dump(),
    }

@app.post("/api/login")
def login(payload: LoginRequest, store: DocumentStore = Depends(get_store)):
    role = payload.role or "user"
    matches = store.query(account_collection(role), [("email", "==", payload.email)], limit=1)
    if not matches:
        raise NotFound("Account not found")
    account = matches[0]
    if not verify_password(payload.password, account.get("password", "")):
        logger.info(f"Failed login for {payload.email}")
        raise AuthenticationFailed()
    identity = identity_for(account, role)
    return {
        "message": f"{'Professional' if role == 'professional' else 'User'} Login Successful",
        "token": create_access_token(identity),
        "user": identity.model_dump(),
    }

@app.put("/api/users/{user_id}/update")
def update_user(
    user_id: str,
    payload: UserUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    store: DocumentStore = Depends(get_store),
):
    ensure_owner(identity, user_id)
    updates = {k: v for k, v in payload.model_dump().items() if v}
    if not store.update("users", user_id, updates):
        raise NotFound("User not found")
    user = store.get("users", user_id)
    token = create_access_token(identity_for(user, "user"))
    return {"message": "Profile updated successfully", "token": token, "user": public_profile(user)}


# Professionals
@app.post("/api/professional-register")
def register_professional(
    name: str = Form(...),
    email: EmailStr = Form(...),
    password: str = Form(...),
    specialization: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    state: Optional[str] = Form(None),
    bio: Optional[str] = Form(None),
    experience_years: Optional[str] = Form(None),
    hourly_rate: Optional[str] = Form(None),
    degree: Optional[UploadFile] = File(None),
    store: DocumentStore = Depends(get_store),
):
    if store.query("professionals", [("email", "==", email)], limit=1):
        raise Conflict("Professional already registered")
    pro_doc = ProfessionalSchema(
        name=name,
        email=email,
        password=hash_password(password),
        specialization=specialization,
        experience_years=to_int("experience_years", experience_years),
        hourly_rate=to_float("hourly_rate", hourly_rate),
        degree_document=stored_path(degree) if has_file(degree) else None,
        phone=phone or None,
        city=city or None,
        state=state or None,
        bio=bio or None,
    ).model_dump(exclude_none=True)
    pro_doc.setdefault("degree_document", None)
    pro_id = store.add("professionals", pro_doc)
    logger.info(f"Registered professional {pro_id} pending verification")
    return {
        "message": "Professional registered (Pending admin verification)",
        "professionalId": pro_id,
    }

@app.get("/api/professionals")
def list_professionals(
    specialization: Optional[str] = None,
    city: Optional[str] = None,
    min_rating: Optional[float] = Query(None, alias="minRating"),
    max_rate: Optional[float] = Query(None, alias="maxRate"),
    store: DocumentStore = Depends(get_store),
):
    filters = []
    if specialization:
        filters.append(("specialization", "==", specialization))
    if city:
        filters.append(("city", "==", city))
    if min_rating is not None:
        filters.append(("rating", ">=", min_rating))
    if max_rate is not None:
        filters.append(("hourly_rate", "<=", max_rate))
    return [public_profile(p) for p in store.query("professionals", filters)]

@app.get("/api/professionals/{professional_id}")
def get_professional(professional_id: str, store: DocumentStore = Depends(get_store)):
    professional = store.get("professionals", professional_id)
    if not professional:
        raise NotFound("Professional not found")
    projects = store.query("projects", [("professional_id", "==", professional_id)], limit=6)
    reviews = store.query(
        "reviews",
        [("professional_id", "==", professional_id)],
        order=("created_at", "desc"),
        limit=10,
    )
    return {"professional": public_profile(professional), "projects": projects, "reviews": reviews}

@app.put("/api/professionals/{professional_id}/update")
def update_professional(
    professional_id: str,
    name: Optional[str] = Form(None),
    specialization: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    state: Optional[str] = Form(None),
    bio: Optional[str] = Form(None),
    experience_years: Optional[str] = Form(None),
    hourly_rate: Optional[str] = Form(None),
    degree: Optional[UploadFile] = File(None),
    license_file: Optional[UploadFile] = File(None, alias="license"),
    id_proof: Optional[UploadFile] = File(None, alias="idProof"),
    profile_pic: Optional[UploadFile] = File(None, alias="profilePic"),
    identity: Identity = Depends(get_current_identity),
    store: DocumentStore = Depends(get_store),
):
    ensure_owner(identity, professional_id)
    updates: Dict[str, Any] = {
        k: v
        for k, v in {
            "name": name,
            "specialization": specialization,
            "phone": phone,
            "city": city,
            "state": state,
            "bio": bio,
        }.items()
        if v
    }
    if experience_years:
        updates["experience_years"] = to_int("experience_years", experience_years)
    if hourly_rate:
        updates["hourly_rate"] = to_float("hourly_rate", hourly_rate)
    for field, upload in (
        ("degree_document", degree),
        ("license_document", license_file),
        ("id_proof_document", id_proof),
        ("profile_image", profile_pic),
    ):
        if has_file(upload):
            updates[field] = stored_path(upload)

    if not store.update("professionals", professional_id, updates):
        raise NotFound("Professional not found")
    professional = store.get("professionals", professional_id)
    token = create_access_token(identity_for(professional, "professional"))
    return {
        "message": "Profile updated successfully",
        "professionalId": professional_id,
        "token": token,
        "user": public_profile(professional),
    }


# Projects
@app.get("/api/projects")
def list_projects(
    category: Optional[str] = None,
    location: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
):
    filters = [("category", "==", category)] if category else []
    projects = store.query("projects", filters)
    if location:
        needle = location.lower()
        projects = [p for p in projects if p.get("location") and needle in p["location"].lower()]
    return projects

@app.get("/api/projects/{project_id}")
def get_project(project_id: str, store: DocumentStore = Depends(get_store)):
    project = store.get("projects", project_id)
    if not project:
        raise NotFound("Project not found")
    if project.get("professional_id"):
        pro = store.get("professionals", project["professional_id"])
        if pro:
            project["architect_name"] = pro.get("name")
            project["specialization"] = pro.get("specialization")
            project["rating"] = pro.get("rating")
    return project

@app.post("/api/projects")
def create_project(
    title: str = Form(...),
    category: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    area: Optional[str] = Form(None),
    budget: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    identity: Identity = Depends(get_current_identity),
    store: DocumentStore = Depends(get_store),
):
    files = [f for f in (images or []) if has_file(f)]
    if len(files) > MAX_PROJECT_IMAGES:
        raise InvalidInput(f"At most {MAX_PROJECT_IMAGES} images are allowed")
    project_doc = ProjectSchema(
        title=title,
        slug="-".join(title.lower().split()),
        category=category,
        location=location,
        area=area,
        budget=budget,
        description=description,
        user_id=identity.id,
        images=[stored_path(f) for f in files],
    ).model_dump()
    project_id = store.add("projects", project_doc)
    return {"message": "Project created", "projectId": project_id}


# Reviews
@app.post("/api/reviews")
def submit_review(
    payload: ReviewRequest,
    identity: Identity = Depends(get_current_identity),
    store: DocumentStore = Depends(get_store),
):
    if not store.get("professionals", payload.professional_id):
        raise NotFound("Professional not found")
    reviewer = store.get("users", identity.id)
    review_doc = ReviewSchema(
        user_id=identity.id,
        user_name=reviewer["name"] if reviewer else "Anonymous",
        professional_id=payload.professional_id,
        project_id=payload.project_id,
        rating=payload.rating,
        review_text=payload.review_text,
    ).model_dump()
    review_id = store.add("reviews", review_doc)
    refresh_professional_rating(store, payload.professional_id)
    return {"message": "Review submitted", "reviewId": review_id}


# Requirements
@app.post("/api/requirements")
def submit_requirements(
    payload: Dict[str, Any] = Body(...),
    identity: Identity = Depends(get_current_identity),
    store: DocumentStore = Depends(get_store),
):
    requirement = RequirementSchema(**{**payload, "user_id": identity.id, "status": "submitted"})
    requirement_id = store.add("requirements", requirement.model_dump())
    return {"message": "Requirements saved", "requirementId": requirement_id}

@app.get("/api/requirements")
def list_requirements(identity: Identity = Depends(get_current_identity), store: DocumentStore = Depends(get_store)):
    return store.query("requirements", [("user_id", "==", identity.id)], order=("created_at", "desc"))


# Cost Estimations
@app.post("/api/cost-estimate")
def create_cost_estimate(
    payload: CostEstimateRequest,
    identity: Identity = Depends(get_current_identity),
    store: DocumentStore = Depends(get_store),
):
    area = parse_area(payload.area)
    breakdown = estimate(payload.project_type, area, payload.quality_level)
    estimate_doc = CostEstimateSchema(
        user_id=identity.id,
        project_type=payload.project_type,
        area=area,
        location=payload.location,
        quality_level=payload.quality_level,
        num_rooms=payload.num_rooms,
        **breakdown.as_dict(),
    ).model_dump()
    rounded = breakdown.rounded()
    estimate_id = store.add("cost_estimations", estimate_doc)
    return {
        "message": "Estimate calculated and saved",
        "estimateId": estimate_id,
        "breakdown": rounded,
    }

@app.get("/api/cost-estimates")
def list_cost_estimates(identity: Identity = Depends(get_current_identity), store: DocumentStore = Depends(get_store)):
    return store.query("cost_estimations", [("user_id", "==", identity.id)])


# AI Design Generation
@app.post("/api/generate-design")
def generate_design_route(image: UploadFile = File(...), style: str = Form("modern")):
    stored = save_upload(image, config.UPLOAD_DIR)
    try:
        with open(stored.path, "rb") as fh:
            image_url = generate_design(fh.read(), style)
    finally:
        remove_upload(stored.path)
    return {"imageUrl": image_url}


# Chat
@app.post("/api/chat")
def chat(
    payload: ChatRequest,
    identity: Identity = Depends(get_current_identity),
    store: DocumentStore = Depends(get_store),
):
    response = chatbot_reply(payload.message)
    chat_doc = ChatMessageSchema(
        user_id=identity.id,
        message=payload.message,
        response=response,
        context_type=payload.context_type,
    ).model_dump()
    message_id = store.add("chat_messages", chat_doc)
    return {"message": "Chat saved", "response": response, "messageId": message_id}

@app.get("/api/chat")
def chat_history(identity: Identity = Depends(get_current_identity), store: DocumentStore = Depends(get_store)):
    return store.query("chat_messages", [("user_id", "==", identity.id)], order=("created_at", "asc"), limit=50)


# Bookings
@app.post("/api/bookings")
def create_booking(
    payload: BookingRequest,
    identity: Identity = Depends(get_current_identity),
    store: DocumentStore = Depends(get_store),
):
    booking_doc = BookingSchema(user_id=identity.id, **payload.model_dump()).model_dump()
    booking_id = store.add("bookings", booking_doc)
    return {"message": "Booking request sent", "bookingId": booking_id}

def _with_professional(store: DocumentStore, booking: Dict[str, Any]) -> Dict[str, Any]:
    pro = store.get("professionals", booking["professional_id"]) if booking.get("professional_id") else None
    return {
        **booking,
        "professional_name": pro["name"] if pro else "Unknown",
        "specialization": (pro.get("specialization") or "") if pro else "",
    }

@app.get("/api/bookings")
def list_bookings(identity: Identity = Depends(get_current_identity), store: DocumentStore = Depends(get_store)):
    bookings = store.query("bookings", [("user_id", "==", identity.id)], order=("created_at", "desc"))
    return [_with_professional(store, b) for b in bookings]

@app.get("/api/bookings/user")
def list_user_bookings(identity: Identity = Depends(get_current_identity), store: DocumentStore = Depends(get_store)):
    bookings = store.query("bookings", [("user_id", "==", identity.id)])
    return [_with_professional(store, b) for b in bookings]

@app.get("/api/bookings/professional")
def list_professional_bookings(
    identity: Identity = Depends(get_current_identity),
    store: DocumentStore = Depends(get_store),
):
    bookings = store.query("bookings", [("professional_id", "==", identity.id)])
    logger.info(f"Found {len(bookings)} bookings for professional {identity.id}")
    result = []
    for b in bookings:
        client = store.get("users", b["user_id"]) if b.get("user_id") else None
        result.append({
            **b,
            "user_name": client["name"] if client else "Unknown",
            "user_email": client.get("email", "") if client else "",
            "user_phone": client.get("phone", "") if client else "",
        })
    return result


# Collaboration
@app.post("/api/collaborations")
def upload_collaboration(
    project_id: str = Form(...),
    description: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    identity: Identity = Depends(get_current_identity),
    store: DocumentStore = Depends(get_store),
):
    if not has_file(file):
        raise InvalidInput("No file uploaded")
    stored = save_upload(file, config.UPLOAD_DIR)
    collab_doc = CollaborationSchema(
        project_id=project_id,
        uploader_type=identity.role,
        uploader_id=identity.id,
        file_name=stored.original_name,
        file_path=stored.path,
        file_type=stored.content_type,
        file_size=stored.size,
        description=description,
    ).model_dump()
    file_id = store.add("collaborations", collab_doc)
    return {"message": "File uploaded", "fileId": file_id}

@app.get("/api/collaborations/{project_id}")
def list_collaborations(
    project_id: str,
    identity: Identity = Depends(get_current_identity),
    store: DocumentStore = Depends(get_store),
):
    return store.query("collaborations", [("project_id", "==", project_id)], order=("created_at", "desc"))


# Utility endpoints
@app.get("/")
def root():
    return {"message": "Planora Marketplace API running"}
