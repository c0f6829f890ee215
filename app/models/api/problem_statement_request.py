from pydantic import BaseModel, ConfigDict, Field


class ProblemStatementIdRequest(BaseModel):
    """Body carrying a problem statement id (catalog id or CUSTOM_ id)."""

    model_config = ConfigDict(populate_by_name=True)

    problem_statement_id: str = Field(
        ..., alias="problemStatementId", min_length=1, description="Problem statement ID"
    )
