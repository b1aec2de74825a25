"""
Data models for the group evaluation server
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RubricOption(str, Enum):
    """Fixed rubric options that can be ticked per student per evaluation"""
    CANNOT_DO = "cannot_do"
    LEARNED_CANNOT_WRITE = "learned_cannot_write"
    LEARNED_CAN_WRITE = "learned_can_write"
    WEEKLY_HOMEWORK = "weekly_homework"
    WEEKLY_ATTENDANCE = "weekly_attendance"

    @property
    def marks(self) -> int:
        return RUBRIC_MARKS[self]

    @property
    def label(self) -> str:
        return RUBRIC_LABELS[self]

    @classmethod
    def parse(cls, option_id: Optional[str]) -> Optional["RubricOption"]:
        """Return the option for an id, or None for ids outside the rubric"""
        if not option_id:
            return None
        try:
            return cls(option_id)
        except ValueError:
            return None


RUBRIC_MARKS: Dict[RubricOption, int] = {
    RubricOption.CANNOT_DO: -5,
    RubricOption.LEARNED_CANNOT_WRITE: 5,
    RubricOption.LEARNED_CAN_WRITE: 10,
    RubricOption.WEEKLY_HOMEWORK: 15,
    RubricOption.WEEKLY_ATTENDANCE: 5,
}

RUBRIC_LABELS: Dict[RubricOption, str] = {
    RubricOption.CANNOT_DO: "I cannot do this topic",
    RubricOption.LEARNED_CANNOT_WRITE: "I learned the topic but cannot write it",
    RubricOption.LEARNED_CAN_WRITE: "I learned the topic and can write it",
    RubricOption.WEEKLY_HOMEWORK: "I did homework every day this week",
    RubricOption.WEEKLY_ATTENDANCE: "I attended every day this week",
}


class Role(str, Enum):
    """Responsibility tags a student can hold inside a group"""
    TEAM_LEADER = "team-leader"
    TIME_KEEPER = "time-keeper"
    REPORTER = "reporter"
    RESOURCE_MANAGER = "resource-manager"
    PEACE_MAKER = "peace-maker"

    @property
    def label(self) -> str:
        return self.value.replace("-", " ").title()


class Collection(str, Enum):
    """Collections held by the remote document store"""
    GROUPS = "groups"
    STUDENTS = "students"
    TASKS = "tasks"
    EVALUATIONS = "evaluations"
    ADMINS = "admins"

    @property
    def cache_key(self) -> str:
        return f"{self.value}_data"


# ==================== STORE DOCUMENTS ====================

class Document(BaseModel):
    """Base for every record read from the document store"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None

    def to_store(self) -> Dict[str, Any]:
        """Fields as written to the store (camelCase, no id)"""
        return self.model_dump(by_alias=True, exclude={"id"}, exclude_none=True, mode="json")


class Group(Document):
    name: str
    created_at: Optional[Union[float, str]] = Field(default=None, alias="createdAt")


class Student(Document):
    name: str
    roll: str
    gender: Optional[str] = None
    group_id: Optional[str] = Field(default=None, alias="groupId")
    academic_group: Optional[str] = Field(default=None, alias="academicGroup")
    session: Optional[str] = None
    role: Optional[str] = None
    contact: Optional[str] = None

    @field_validator("roll", mode="before")
    @classmethod
    def _roll_as_text(cls, value: Any) -> Any:
        # rolls like "007" must keep their leading zeros
        return str(value) if isinstance(value, (int, float)) else value

    @property
    def role_tag(self) -> Optional[Role]:
        if not self.role:
            return None
        try:
            return Role(self.role)
        except ValueError:
            return None


class Task(Document):
    name: str
    description: Optional[str] = None
    max_score: int = Field(default=100, alias="maxScore")
    date: Optional[str] = None


class OptionMark(BaseModel):
    """One rubric checkbox inside a score record"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    selected: bool = False
    option_id: Optional[str] = Field(default=None, alias="optionId")

    @field_validator("selected", mode="before")
    @classmethod
    def _selected_flag(cls, value: Any) -> bool:
        return value is True


def _number_or_zero(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


class Score(BaseModel):
    """Per-student score record embedded in an evaluation"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    task_score: float = Field(default=0, alias="taskScore")
    teamwork_score: float = Field(default=0, alias="teamworkScore")
    comments: str = ""
    option_marks: Optional[Dict[str, OptionMark]] = Field(default=None, alias="optionMarks")

    @field_validator("task_score", "teamwork_score", mode="before")
    @classmethod
    def _coerce_score(cls, value: Any) -> float:
        return _number_or_zero(value)

    @field_validator("comments", mode="before")
    @classmethod
    def _coerce_comments(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("option_marks", mode="before")
    @classmethod
    def _drop_malformed_marks(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return None
        return {k: v for k, v in value.items() if isinstance(v, (dict, BaseModel))}


class Evaluation(Document):
    task_id: Optional[str] = Field(default=None, alias="taskId")
    group_id: Optional[str] = Field(default=None, alias="groupId")
    scores: Optional[Dict[str, Score]] = None
    updated_at: Optional[Union[float, str]] = Field(default=None, alias="updatedAt")
    created_at: Optional[Union[float, str]] = Field(default=None, alias="createdAt")

    @field_validator("scores", mode="before")
    @classmethod
    def _drop_malformed_scores(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return None
        return {k: v for k, v in value.items() if isinstance(v, (dict, BaseModel))}


class Permissions(BaseModel):
    read: bool = True
    write: bool = False
    delete: bool = False


class Admin(Document):
    email: str
    type: str = "user"  # "user" | "admin" | "super-admin"
    permissions: Permissions = Permissions()


# ==================== VIEW MODELS ====================

class GroupScore(BaseModel):
    """Aggregated score of one group"""
    score: float = 0.0
    members: int = 0


class RankTier(str, Enum):
    FIRST = "first"
    SECOND = "second"
    THIRD = "third"
    OTHER = "other"


class GroupRankRow(BaseModel):
    group_id: str
    name: str
    score: float
    member_count: int
    rank: int
    rank_tier: RankTier


class StudentStanding(BaseModel):
    """Average score of a student across the evaluations they appear in"""
    student_id: str
    name: str
    roll: str = ""
    group_id: Optional[str] = None
    academic_group: Optional[str] = None
    total_score: float = 0.0
    evaluation_count: int = 0
    average_score: float = 0.0


class StudentRankRow(StudentStanding):
    rank: int
    group_name: Optional[str] = None


class ProblemStats(BaseModel):
    total_entries: int = 0
    counts: Dict[RubricOption, int] = Field(
        default_factory=lambda: {option: 0 for option in RubricOption}
    )


class EvaluationSummary(BaseModel):
    evaluation_id: Optional[str] = None
    task_id: Optional[str] = None
    task_name: Optional[str] = None
    group_id: Optional[str] = None
    group_name: Optional[str] = None
    student_count: int = 0
    total_score: float = 0.0
    updated_at: Optional[Union[float, str]] = None


class MemberResult(BaseModel):
    student_id: str
    name: str
    role: Optional[str] = None
    task_score: float = 0.0
    teamwork_score: float = 0.0
    additional_marks: int = 0
    total: float = 0.0
    comments: str = ""
    selected_options: List[str] = []


class GroupEvaluationDetail(BaseModel):
    evaluation_id: Optional[str] = None
    task_id: Optional[str] = None
    task_name: str = "Unknown Task"
    members: List[MemberResult] = []


class AcademicGroupShare(BaseModel):
    academic_group: str
    count: int
    percent: int


class DashboardSummary(BaseModel):
    total_groups: int = 0
    total_students: int = 0
    academic_groups: int = 0
    students_without_role: int = 0
    gender_counts: Dict[str, int] = {}
    total_tasks: int = 0
    evaluated_tasks: int = 0
    pending_tasks: int = 0
    total_evaluations: int = 0
    average_evaluation_score: float = 0.0
    academic_group_shares: List[AcademicGroupShare] = []


# ==================== SETTINGS ====================

class CacheSettings(BaseModel):
    """Local cache parameters"""
    prefix: str = "smart_evaluator_"
    ttl_seconds: float = 300.0      # 5 minutes
    soft_ceiling: int = 50          # eviction only kicks in above this many entries
    evict_count: int = 10           # entries dropped per eviction pass
    force_refresh_seconds: float = 1.0
    backend: str = "memory"         # "memory" | "file"
    path: str = "data/cache.json"
    max_entries: int = 200          # storage capacity before writes are rejected


class StoreSettings(BaseModel):
    """Remote document store connection"""
    backend: str = "memory"         # "memory" | "http"
    base_url: str = "http://localhost:8080/api"
    timeout: float = 10.0
    seed_file: Optional[str] = "data/seed.yaml"


class Settings(BaseModel):
    """Top-level server configuration"""
    log_level: str = "INFO"
    cache: CacheSettings = CacheSettings()
    store: StoreSettings = StoreSettings()
