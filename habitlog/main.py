from fastapi import FastAPI, Depends, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
import os
from pathlib import Path

from habitlog.infrastructure.database import engine, get_db, Base
from habitlog import models  # noqa: F401  registers all tables on Base
from habitlog.schemas import (
    HabitSave, HabitResponse,
    CompletionSet, CompletionResponse,
    ProgressSet, DailyProgressResponse,
    TaskSave, TaskResponse, TaskStats, HabitMonthStats,
)
from habitlog.middleware.auth import get_current_user_id
from habitlog.exceptions import (
    ValidationError, StorageError, RecordNotFoundException, NotAuthenticated,
)
from habitlog import crud
from habitlog.infrastructure.migrations import auto_migrate
from habitlog.constants import (
    CORS_ALLOWED_ORIGINS, DEFAULT_LOG_DIRECTORY_PROD, DEFAULT_LOG_DIRECTORY_DEV,
)

LOG_DIR = os.getenv("HABITLOG_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
LOG_FILE = os.getenv("HABITLOG_LOG_FILE", "app.log")

try:
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE
    log_path.touch(exist_ok=True)
except PermissionError:
    # No permissions for /var/log, use a local directory
    LOG_DIR = DEFAULT_LOG_DIRECTORY_DEV
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_path),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger("habitlog")

Base.metadata.create_all(bind=engine)

# Add columns introduced since the database was created
try:
    auto_migrate(engine)
except Exception as e:
    logger.error(f"Auto-migration failed: {e}")

app = FastAPI(
    title="Habit Log API",
    description="Daily habits, mood tracking and a to-do list",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===== ERROR MAPPING =====

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "field": exc.field})


@app.exception_handler(RecordNotFoundException)
async def not_found_handler(request: Request, exc: RecordNotFoundException):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Storage temporarily unavailable, please retry"})


@app.exception_handler(NotAuthenticated)
async def not_authenticated_handler(request: Request, exc: NotAuthenticated):
    # Logged for fail2ban
    logger.warning(f"Authentication failed from {request.client.host if request.client else '-'}: {exc.reason}")
    return JSONResponse(
        status_code=401,
        content={"detail": exc.reason},
        headers={"WWW-Authenticate": "Bearer"}
    )


@app.on_event("startup")
async def startup_event():
    logger.info(f"Habit Log API started. Logging to: {log_path}")


# Health check (no auth required)
@app.get("/")
async def root():
    return {"message": "Habit Log API", "status": "active"}


# ===== HABITS ENDPOINTS =====
# Gateway calls are blocking, so routes are plain functions run in the threadpool

@app.get("/api/habits", response_model=List[HabitResponse])
def get_habits(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Get all habits"""
    return crud.list_habits(db, user_id)


@app.post("/api/habits", response_model=HabitResponse, status_code=status.HTTP_201_CREATED)
def create_habit(
    habit: HabitSave,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Create a new habit"""
    return crud.save_habit(db, user_id, habit.model_copy(update={"id": None}))


@app.put("/api/habits/{habit_id}", response_model=HabitResponse)
def update_habit(
    habit_id: str,
    habit: HabitSave,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Update a habit"""
    return crud.save_habit(db, user_id, habit.model_copy(update={"id": habit_id}))


@app.delete("/api/habits/{habit_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_habit(habit_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Delete a habit and all of its completions"""
    if not crud.delete_habit(db, user_id, habit_id):
        raise HTTPException(status_code=404, detail="Habit not found")


# ===== COMPLETIONS ENDPOINTS =====

@app.get("/api/completions", response_model=List[CompletionResponse])
def get_completions(
    year: int,
    month: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get habit completions for a month (month is 1-12)"""
    return crud.list_habit_completions(db, user_id, year, month)


@app.put("/api/completions", response_model=CompletionResponse)
def set_completion(
    body: CompletionSet,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Mark a habit done or not done for a day"""
    return crud.set_habit_completion(db, user_id, body.habit_id, body.date, body.completed)


# ===== DAILY PROGRESS ENDPOINTS =====

@app.get("/api/progress", response_model=List[DailyProgressResponse])
def get_progress(
    year: int,
    month: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get mood and motivation ratings for a month"""
    return crud.list_daily_progress(db, user_id, year, month)


@app.put("/api/progress", response_model=DailyProgressResponse)
def set_progress(
    body: ProgressSet,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Set mood and motivation for a day"""
    return crud.set_daily_progress(db, user_id, body.date, body.mood, body.motivation)


# ===== TASKS ENDPOINTS =====

@app.get("/api/tasks", response_model=List[TaskResponse])
def get_tasks(
    task_filter: Optional[str] = Query(None, alias="filter"),
    sort_by: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get tasks with optional filtering (all, today, overdue, completed, active) and sorting"""
    return crud.list_tasks(db, user_id, task_filter, sort_by)


@app.post("/api/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(task: TaskSave, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Create a new task"""
    return crud.save_task(db, user_id, task.model_copy(update={"id": None}))


@app.put("/api/tasks/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: str,
    task: TaskSave,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Update a task"""
    return crud.save_task(db, user_id, task.model_copy(update={"id": task_id}))


@app.post("/api/tasks/{task_id}/toggle", response_model=TaskResponse)
def toggle_task(task_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Complete or reopen a task"""
    return crud.toggle_task(db, user_id, task_id)


@app.delete("/api/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(task_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Delete a task"""
    if not crud.delete_task(db, user_id, task_id):
        raise HTTPException(status_code=404, detail="Task not found")


# ===== STATS ENDPOINTS =====

@app.get("/api/stats/habits", response_model=HabitMonthStats)
def get_habit_stats(
    year: int,
    month: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get monthly habit and mental state statistics"""
    return crud.habit_month_stats(db, user_id, year, month)


@app.get("/api/stats/tasks", response_model=TaskStats)
def get_task_stats(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Get task counts for today, overdue and completed"""
    return crud.task_stats(db, user_id)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("habitlog.main:app", host="0.0.0.0", port=8000, reload=False)
