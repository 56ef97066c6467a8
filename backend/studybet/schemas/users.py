import uuid

from pydantic import BaseModel

from studybet.domain.user import User


class UserResponse(BaseModel):
    id: uuid.UUID
    nickname: str
    level: int
    experience: int
    required_exp: int
    current_streak: int
    longest_streak: int

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            nickname=user.nickname,
            level=user.level,
            experience=user.experience,
            required_exp=user.required_exp,
            current_streak=user.current_streak,
            longest_streak=user.longest_streak,
        )
