from pydantic import BaseModel
from datetime import datetime, date
from typing import List, Optional, Union

from habitlog.constants import Priority, Status, Category

DayInput = Union[datetime, date, str]


# Habit schemas
class HabitSave(BaseModel):
    id: Optional[str] = None  # present -> update, absent -> insert
    name: str
    icon: str
    start_time: Optional[str] = None  # HH:MM
    end_time: Optional[str] = None
    duration: Optional[Union[float, str]] = None  # hours, 0-24


class HabitResponse(BaseModel):
    id: str
    name: str
    icon: str
    start_time: str = ""
    end_time: str = ""
    duration: str = ""
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Completion schemas
class CompletionSet(BaseModel):
    habit_id: str
    date: DayInput
    completed: bool


class CompletionResponse(BaseModel):
    id: str
    habit_id: str
    date: str  # yyyy-MM-dd
    completed: bool


# Daily progress schemas
class ProgressSet(BaseModel):
    date: DayInput
    mood: Optional[int] = None
    motivation: Optional[int] = None


class DailyProgressResponse(BaseModel):
    id: str
    date: str  # yyyy-MM-dd
    mood: Optional[int] = None
    motivation: Optional[int] = None


# Task schemas
class TaskSave(BaseModel):
    id: Optional[str] = None
    task: str
    due_date: DayInput
    priority: Priority = Priority.MEDIUM
    status: Status = Status.NOT_STARTED
    category: Category = Category.WORK
    completed: bool = False


class TaskResponse(BaseModel):
    id: str
    task: str
    due_date: str  # ISO-8601, UTC
    priority: Priority
    status: Status
    category: Category
    completed: bool = False
    created_at: Optional[datetime] = None


# Statistics schemas
class HabitMonthStat(BaseModel):
    habit_id: str
    name: str
    icon: str
    count: int  # days completed this month
    goal: int   # days in month


class DayStat(BaseModel):
    date: str
    done: int
    not_done: int
    progress: float  # percent of habits done that day


class MentalStatePoint(BaseModel):
    date: str
    value: Optional[float] = None  # mean of mood and motivation


class HabitMonthStats(BaseModel):
    year: int
    month: int
    total_habits: int
    completed_count: int
    overall_progress: float
    habits: List[HabitMonthStat]
    days: List[DayStat]
    mental_state: List[MentalStatePoint]


class TaskStats(BaseModel):
    today: int
    overdue: int
    completed: int
    total: int
    progress_percentage: float
