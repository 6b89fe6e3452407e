from pydantic import BaseModel


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int
