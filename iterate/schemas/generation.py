from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GenerationMode(str, Enum):
    """How the test-authoring service should treat the existing test file."""

    NEW = "new"
    UPDATE = "update"
    REGENERATE = "regenerate"


class CamelModel(BaseModel):
    """Base for payloads exchanged in camelCase with external services."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Coverage(CamelModel):
    normal_cases: int = Field(description="Number of normal/expected case tests")
    edge_cases: int = Field(description="Number of edge case tests")
    error_cases: int = Field(description="Number of error case tests")
    total_tests: int = Field(description="Total number of test cases")


class GenerationOutput(CamelModel):
    """Structured reply expected from the test-authoring model."""

    tests: str = Field(
        description="Clean, runnable test code without markdown or explanations"
    )
    comments: str = Field(
        description="Brief summary of what the tests cover and any important notes"
    )
    framework: str = Field(
        description="The testing framework used (e.g., jest, mocha, pytest)"
    )
    coverage: Coverage
    assumptions: List[str] = Field(
        description="List of assumptions made about the code being tested"
    )
    recommendations: List[str] = Field(
        description="Suggestions for improving the original code or tests"
    )
    estimated_complexity: Literal["low", "medium", "high"] = Field(
        description="Estimated complexity of the code being tested"
    )
    test_quality: Literal["basic", "good", "excellent"] = Field(
        description="Quality assessment of the generated tests"
    )
    time_to_write: str = Field(
        description="Estimated time to write these tests manually"
    )
    dependencies: List[str] = Field(
        description="List of testing dependencies or packages needed"
    )


class GenerationRequest(BaseModel):
    """Everything the test-authoring service needs for one source file."""

    current_code: str
    source_path: str
    test_path: str
    framework: str = "jest"
    previous_code: Optional[str] = None
    existing_tests: Optional[str] = None
    diff_patch: Optional[str] = None
    change_type: Optional[GenerationMode] = None


class GeneratedTestResult(BaseModel):
    """Generated test source plus informational metadata."""

    tests: str
    metadata: Dict[str, Any] = {}

    @classmethod
    def from_output(cls, output: GenerationOutput) -> "GeneratedTestResult":
        metadata = output.model_dump(by_alias=True, exclude={"tests"})
        return cls(tests=output.tests, metadata=metadata)


class GenerateTestsRequest(CamelModel):
    """Body of the direct generate-tests endpoint."""

    code: str
    framework: str
    file_path: str
    test_file_path: str
    change_type: Optional[GenerationMode] = None
    previous_code: Optional[str] = None
    existing_tests: Optional[str] = None


class GenerateTestsResponse(BaseModel):
    tests: str
    comments: str
    metadata: Dict[str, Any]
