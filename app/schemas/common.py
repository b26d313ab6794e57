from pydantic import BaseModel, ConfigDict, Field


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int
    per_page: int = Field(alias="perPage")
    current_page: int = Field(alias="currentPage")
    last_page: int = Field(alias="lastPage")
