from sqlmodel import SQLModel, Field


class Film(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(index=True)
    owner: int = Field(foreign_key="user.id", index=True)
    private: bool = Field(default=False)
