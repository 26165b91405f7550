"""
FastAPI Backend for Agenta task assignment

Exposes the skill rating updater, the mediator (candidate ranking) and the
assignment lifecycle as a REST API.

Endpoints:
    - POST /api/skills/elo: Apply a completion to a rating map (pure)
    - POST /api/skills/from-description: Infer required skills for a new task
    - POST /api/mediator/rank: Rank already assembled candidate bundles
    - POST /api/mediator/suggest/{manager_id}: Assemble a team's candidates and rank them
    - POST /api/assignments: Create an assignment
    - POST /api/assignments/{assignment_id}/start: pending -> in_progress
    - POST /api/assignments/{assignment_id}/complete: Complete and update skill ratings
    - POST /api/assignments/{assignment_id}/description: Expanded description for the assignee
    - POST /api/assignments/{assignment_id}/aid: Practical guidance for the assignee
    - GET /api/people/{uid}/skill-ratings: Current ratings for a person
    - GET /health: Health check

Dependencies:
    - fastapi: pip install fastapi
    - uvicorn: pip install uvicorn
"""
from dotenv import load_dotenv
load_dotenv()
import os
import sys
import traceback
from typing import Callable, Dict, List, Optional
from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Add current directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import LLMConfig, load_llm_config, validate_llm_config, log_llm_provider_status
from firebase_init import init_firebase
from models.core_models import (
    MediatorCandidate,
    MediatorTaskInput,
    NewProjectRequest,
    ProjectAssignment,
    RankedSuggestion,
)
from services.assignment_store import AssignmentStore, FirestoreAssignmentStore, StoreError
from services.assignment_service import (
    AssignmentNotFoundError,
    CompletionResult,
    InvalidTransitionError,
    PersonNotFoundError,
    SuggestionResult,
    TaskSupportText,
    assignment_aid,
    complete_assignment,
    create_assignment,
    describe_assignment,
    start_assignment,
    suggest_assignees,
)
from services.ranking import RankingStrategy, build_ranking_strategy, rank_candidates
from services.skill_analyzer import get_skills_from_description
from services.skill_elo import update_skill_ratings_for_completion

# Initialize FastAPI app
app = FastAPI(
    title="Agenta API",
    description="Skill ratings, mediator ranking and task assignment",
    version="1.0.0"
)

# Add CORS middleware to allow frontend calls
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Built once (startup or first request)
_llm_config: Optional[LLMConfig] = None
_store: Optional[AssignmentStore] = None


# Request/Response models
class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str


class SkillEloRequest(BaseModel):
    """Request body for POST /api/skills/elo."""
    currentRatings: Dict[str, int] = Field(default_factory=dict, description="Current rating per skill")
    skillsUsed: List[str] = Field(default_factory=list, description="Skills exercised by the completed task")
    importance: Optional[str] = Field("medium", description="low | medium | high | critical")


class SkillEloResponse(BaseModel):
    skillRatings: Dict[str, int]


class RankRequest(BaseModel):
    """Request body for POST /api/mediator/rank."""
    task: MediatorTaskInput
    candidates: List[MediatorCandidate] = Field(default_factory=list)


class RankResponse(BaseModel):
    suggestions: List[RankedSuggestion]


class CompleteRequest(BaseModel):
    """Optional body for POST /api/assignments/{assignment_id}/complete."""
    skillsUsed: Optional[List[str]] = Field(None, description="Skills reported by the assignee")


class SkillRatingsResponse(BaseModel):
    uid: str
    skillRatings: Dict[str, int]
    lastAgentTrainedAt: Optional[int] = None


class DescriptionSkillsRequest(BaseModel):
    """Request body for POST /api/skills/from-description."""
    title: str = Field(..., min_length=1)
    description: str = Field("")


class SkillsResponse(BaseModel):
    skills: List[str]


def get_llm_config() -> LLMConfig:
    """LLM configuration loaded from the environment once per process."""
    global _llm_config
    if _llm_config is None:
        _llm_config = load_llm_config()
    return _llm_config


def get_store() -> AssignmentStore:
    """
    Firestore-backed store, created on first use.

    Raises:
        HTTPException: 503 if Firebase cannot be initialized
    """
    global _store
    if _store is None:
        try:
            _store = FirestoreAssignmentStore(init_firebase())
        except Exception as e:
            print(f"[Assignments] ❌ Firebase initialization failed: {e}")
            raise HTTPException(
                status_code=503,
                detail="Assignment store not available. Firebase initialization failed."
            )
    return _store


def get_ranking_strategy(config: LLMConfig = Depends(get_llm_config)) -> RankingStrategy:
    return build_ranking_strategy(config)


def get_text_completion() -> Optional[Callable]:
    """Completion override for assignee support text; None means the configured provider."""
    return None


def _to_http_exception(e: Exception) -> HTTPException:
    """Map domain errors to HTTP status codes."""
    if isinstance(e, (AssignmentNotFoundError, PersonNotFoundError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InvalidTransitionError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, StoreError):
        return HTTPException(status_code=503, detail=f"Assignment store error: {e}")
    traceback.print_exc()
    return HTTPException(status_code=500, detail=f"Internal error: {str(e)}")


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup."""
    print("=" * 60)
    print("Starting Agenta API...")
    print("=" * 60)

    config = get_llm_config()
    try:
        validate_llm_config(config)
    except RuntimeError as e:
        print(f"[Config] ❌ LLM configuration error: {e}")
        print("[Config] ⚠️  Server will start; ranking and skill analysis use fallbacks")
    log_llm_provider_status(config)
    print("=" * 60)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint.

    Returns:
        HealthResponse: Status of the API
    """
    return HealthResponse(status="ok")


@app.post("/api/skills/elo", response_model=SkillEloResponse)
async def apply_skill_elo(request: SkillEloRequest):
    """
    Apply one completed task to a rating map.

    Pure computation: nothing is read from or written to the store.
    """
    ratings = update_skill_ratings_for_completion(
        request.currentRatings,
        request.skillsUsed,
        request.importance
    )
    return SkillEloResponse(skillRatings=ratings)


@app.post("/api/skills/from-description", response_model=SkillsResponse)
def skills_from_description(
    request: DescriptionSkillsRequest,
    config: LLMConfig = Depends(get_llm_config)
):
    """Infer the skills a new task requires (LLM, or keyword rules without a key)."""
    skills = get_skills_from_description(config, request.title.strip(), request.description.strip())
    return SkillsResponse(skills=skills)


@app.post("/api/mediator/rank", response_model=RankResponse)
def mediator_rank(
    request: RankRequest,
    strategy: RankingStrategy = Depends(get_ranking_strategy)
):
    """
    Rank already assembled candidate bundles for a task.

    Ranking failures never surface as errors: the response falls back to
    the order the candidates were sent in.
    """
    suggestions = rank_candidates(request.task, request.candidates, strategy)
    return RankResponse(suggestions=suggestions)


@app.post("/api/mediator/suggest/{manager_id}", response_model=SuggestionResult)
def mediator_suggest(
    manager_id: str,
    task: MediatorTaskInput,
    store: AssignmentStore = Depends(get_store),
    config: LLMConfig = Depends(get_llm_config),
    strategy: RankingStrategy = Depends(get_ranking_strategy)
):
    """
    Assemble candidate metadata for a manager's team and rank it.

    Returns:
        SuggestionResult: Candidate bundles and the ranked suggestions
    """
    try:
        return suggest_assignees(store, manager_id, task, config, strategy)
    except Exception as e:
        print(f"[Mediator] ❌ Error suggesting assignees for manager {manager_id}: {e}")
        raise _to_http_exception(e)


@app.post("/api/assignments", response_model=ProjectAssignment)
def create_assignment_endpoint(
    request: NewProjectRequest,
    store: AssignmentStore = Depends(get_store),
    config: LLMConfig = Depends(get_llm_config),
    strategy: RankingStrategy = Depends(get_ranking_strategy)
):
    """
    Create an assignment.

    When assignedTo is omitted the mediator's top suggestion receives the task.
    """
    try:
        return create_assignment(store, request, config, strategy)
    except Exception as e:
        print(f"[Assignments] ❌ Error creating assignment '{request.title}': {e}")
        raise _to_http_exception(e)


@app.post("/api/assignments/{assignment_id}/start", response_model=ProjectAssignment)
def start_assignment_endpoint(assignment_id: str, store: AssignmentStore = Depends(get_store)):
    """Move an assignment from pending to in_progress."""
    try:
        return start_assignment(store, assignment_id)
    except Exception as e:
        print(f"[Assignments] ❌ Error starting assignment {assignment_id}: {e}")
        raise _to_http_exception(e)


@app.post("/api/assignments/{assignment_id}/complete", response_model=CompletionResult)
def complete_assignment_endpoint(
    assignment_id: str,
    request: Optional[CompleteRequest] = None,
    store: AssignmentStore = Depends(get_store),
    config: LLMConfig = Depends(get_llm_config)
):
    """
    Complete an assignment and update the assignee's skill ratings.

    Completing an already completed assignment returns the stored result unchanged.
    """
    skills_used = request.skillsUsed if request is not None else None
    try:
        return complete_assignment(store, assignment_id, config, skills_used=skills_used)
    except Exception as e:
        print(f"[Assignments] ❌ Error completing assignment {assignment_id}: {e}")
        raise _to_http_exception(e)


@app.post("/api/assignments/{assignment_id}/description", response_model=TaskSupportText)
def assignment_description_endpoint(
    assignment_id: str,
    store: AssignmentStore = Depends(get_store),
    config: LLMConfig = Depends(get_llm_config),
    complete: Optional[Callable] = Depends(get_text_completion)
):
    """
    Expanded 2-4 sentence description for the assignee.

    Returns the stored description with generated=false when no LLM is available.
    """
    try:
        return describe_assignment(store, assignment_id, config, complete=complete)
    except Exception as e:
        print(f"[Assignments] ❌ Error describing assignment {assignment_id}: {e}")
        raise _to_http_exception(e)


@app.post("/api/assignments/{assignment_id}/aid", response_model=TaskSupportText)
def assignment_aid_endpoint(
    assignment_id: str,
    store: AssignmentStore = Depends(get_store),
    config: LLMConfig = Depends(get_llm_config),
    complete: Optional[Callable] = Depends(get_text_completion)
):
    """Practical guidance for the assignee; text is null when no LLM is available."""
    try:
        return assignment_aid(store, assignment_id, config, complete=complete)
    except Exception as e:
        print(f"[Assignments] ❌ Error building aid for assignment {assignment_id}: {e}")
        raise _to_http_exception(e)


@app.get("/api/people/{uid}/skill-ratings", response_model=SkillRatingsResponse)
def get_skill_ratings(uid: str, store: AssignmentStore = Depends(get_store)):
    """Current skill ratings for an employee or manager."""
    try:
        person = store.get_person(uid)
    except Exception as e:
        raise _to_http_exception(e)

    if person is None:
        raise HTTPException(status_code=404, detail=f"Person not found: {uid}")

    return SkillRatingsResponse(
        uid=person.uid,
        skillRatings=person.skill_ratings,
        lastAgentTrainedAt=person.last_agent_trained_at
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    config = get_llm_config()
    return {
        "name": "Agenta API",
        "version": "1.0.0",
        "endpoints": {
            "POST /api/skills/elo": "Apply a completed task to a rating map",
            "POST /api/skills/from-description": "Infer required skills for a task",
            "POST /api/mediator/rank": "Rank candidate bundles for a task",
            "POST /api/mediator/suggest/{manager_id}": "Rank a manager's team for a task",
            "POST /api/assignments": "Create an assignment",
            "POST /api/assignments/{assignment_id}/start": "Start an assignment",
            "POST /api/assignments/{assignment_id}/complete": "Complete an assignment",
            "POST /api/assignments/{assignment_id}/description": "Expanded task description",
            "POST /api/assignments/{assignment_id}/aid": "Guidance for the assignee",
            "GET /api/people/{uid}/skill-ratings": "Current skill ratings",
            "GET /health": "Health check"
        },
        "llmProvider": config.provider,
        "status": "operational"
    }


if __name__ == "__main__":
    import uvicorn

    # Run the server
    # Default: 0.0.0.0:8000
    # Can be overridden with environment variables:
    #   - HOST (default: "0.0.0.0")
    #   - PORT (default: 8000)

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))

    print(f"\n{'='*60}")
    print("Starting Agenta API Server")
    print(f"{'='*60}")
    print(f"Server will run on: http://{host}:{port}")
    print(f"API Documentation: http://{host}:{port}/docs")
    print(f"Health Check: http://{host}:{port}/health")
    print(f"{'='*60}\n")

    uvicorn.run(
        "app:app",
        host=host,
        port=port,
        reload=True  # Auto-reload on code changes (disable in production)
    )
