"""Core data models for the RX Galaxy mission evaluator.

Defines the shared Pydantic models and enums used across the evaluator,
harness, registry and CLI. Every record is plain structured data (strings,
numbers, booleans and lists) so the mission catalog can be serialized to a
remote store or a static YAML file without loss.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Difficulty(StrEnum):
    """Difficulty level shown on a mission briefing."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class PlanetType(StrEnum):
    """Category of a planet on the galaxy map."""

    TUTORIAL = "tutorial"
    CHALLENGE = "challenge"
    MISSION = "mission"
    ADVANCED = "advanced"
    EXPERT = "expert"


class Reward(BaseModel):
    """Resources granted when a mission is completed.

    Attributes:
        fuel: Fuel units added to the player's tank.
        artifacts: Artifact fragments (fractional values are allowed).
        rank: Captain rank points.
    """

    model_config = ConfigDict(frozen=True)

    fuel: float = 0
    artifacts: float = 0
    rank: float = 0

    @field_validator("fuel", "artifacts", "rank")
    @classmethod
    def _must_be_non_negative(cls, v: float) -> float:
        """Validate that reward amounts are >= 0."""
        if v < 0:
            msg = "Reward amounts must be >= 0"
            raise ValueError(msg)
        return v


# ---------------------------------------------------------------------------
# Missions and test cases
# ---------------------------------------------------------------------------


class TestCase(BaseModel):
    """A named, self-contained program plus its expected emission trace.

    Attributes:
        name: Test name, unique within its mission.
        expected_output: Ordered values the program must return.
        test_code: Program text evaluated for this test. When blank, the
            harness evaluates the submitted mission program instead.
    """

    __test__: ClassVar[bool] = False

    model_config = ConfigDict(frozen=True)

    name: str
    expected_output: list[Any]
    test_code: str = ""

    @field_validator("name")
    @classmethod
    def _name_must_be_nonempty(cls, v: str) -> str:
        """Validate that the test name is not blank."""
        if not v.strip():
            msg = "Test case name must not be empty"
            raise ValueError(msg)
        return v


class Mission(BaseModel):
    """A single learning unit: editable program, test cases and reward.

    Attributes:
        id: Mission identifier (matches the planet id on the galaxy map).
        title: Mission title.
        description: Briefing text.
        difficulty: Difficulty level.
        initial_code: Program shown in the editor when the mission opens.
        tests: Ordered test cases; names are unique.
        input_marbles: Marble diagram of the source stream (display only).
        output_marbles: Marble diagram of the expected result (display only).
        reward: Resources granted on completion.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    difficulty: Difficulty
    initial_code: str
    tests: list[TestCase]
    input_marbles: list[Any] = Field(default_factory=list)
    output_marbles: list[Any] = Field(default_factory=list)
    reward: Reward = Field(default_factory=Reward)

    @field_validator("tests")
    @classmethod
    def _tests_must_be_unique(cls, v: list[TestCase]) -> list[TestCase]:
        """Validate that there is at least one test and names do not repeat."""
        if len(v) < 1:
            msg = "tests list must contain at least 1 entry"
            raise ValueError(msg)
        names = [t.name for t in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            msg = f"Duplicate test case names: {duplicates}"
            raise ValueError(msg)
        return v


# ---------------------------------------------------------------------------
# Evaluation results
# ---------------------------------------------------------------------------


class EvaluationOutcome(BaseModel):
    """Result of evaluating one program text.

    Exactly one of *values* (on success) or *message* (on failure) is
    meaningful; *values* is always empty when ``ok`` is false.

    Attributes:
        ok: Whether the program ran to completion without an error.
        values: Plain values returned by the program.
        message: Human-readable failure description.
        logs: Values passed to ``console.log``, one line per call.
    """

    model_config = ConfigDict(frozen=True)

    ok: bool
    values: list[Any] = Field(default_factory=list)
    message: str | None = None
    logs: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_consistency(self) -> EvaluationOutcome:
        """A failed outcome carries a message and no values."""
        if not self.ok and (self.message is None or self.values):
            msg = "A failed outcome needs a message and no values"
            raise ValueError(msg)
        return self


class TestResult(BaseModel):
    """Outcome of one test case run.

    Produced once per evaluation and never mutated; re-running a mission
    produces a fresh list of results.

    Attributes:
        name: Echo of the test case name.
        passed: True iff the program ran and its trace matched.
        actual_output: Trace produced by the program (empty on error).
        expected_output: Copy of the test case's expected trace.
        error: Failure message when the program could not run.
        execution_time_ms: Wall-clock evaluation time, when measured.
    """

    __test__: ClassVar[bool] = False

    model_config = ConfigDict(frozen=True)

    name: str
    passed: bool
    actual_output: list[Any]
    expected_output: list[Any]
    error: str | None = None
    execution_time_ms: float | None = None

    @model_validator(mode="after")
    def _errors_never_pass(self) -> TestResult:
        """A result carrying an error is a failure with no output."""
        if self.error is not None and (self.passed or self.actual_output):
            msg = "A result with an error must be failed and have no actual output"
            raise ValueError(msg)
        return self


# ---------------------------------------------------------------------------
# Galaxy map and player progress
# ---------------------------------------------------------------------------


class Position(BaseModel):
    """Planet coordinates on the galaxy map."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class Planet(BaseModel):
    """A destination on the galaxy map.

    Planets that teach operators outside the evaluator's vocabulary have no
    mission in the catalog; they are shown on the map only.

    Attributes:
        id: Planet identifier (shared with its mission, if any).
        name: Display name.
        description: One-line teaser.
        distance: Flavor text distance label.
        type: Planet category.
        unlocked: Whether the planet is reachable at the start of the game.
        position: Map coordinates.
        color: Hex color used on the map.
        required_fuel: Fuel needed to travel there.
        reward: Reward preview, if any.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    distance: str
    type: PlanetType
    unlocked: bool = False
    position: Position
    color: str
    required_fuel: float = 0
    reward: Reward | None = None


class PlayerStats(BaseModel):
    """Progress of a single player.

    Attributes:
        fuel: Current fuel.
        fuel_level: Tank level indicator.
        artifacts: Collected artifact fragments.
        captain_rank: Rank points.
        completed_missions: Ids of completed missions, in completion order.
    """

    model_config = ConfigDict(frozen=True)

    fuel: float = 4400
    fuel_level: float = 3.3
    artifacts: float = 2.25
    captain_rank: float = 2530
    completed_missions: list[str] = Field(default_factory=list)
