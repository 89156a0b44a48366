from pydantic import BaseModel


class UserResponse(BaseModel):
    id: int
    email: str
    role: str
    first_name: str = ""
    last_name: str = ""
    specialty: str | None = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
