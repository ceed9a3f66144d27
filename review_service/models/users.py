from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)  # id из auth
    email: str = Field(index=True, unique=True)
    full_name: str | None = None
