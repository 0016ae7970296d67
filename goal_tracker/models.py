from datetime import datetime
from typing import Optional
from fastapi import Request
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Field, Session, create_engine
import uuid
import logging

####################
#    DB Models     #
####################

class User(SQLModel, table=True):
    id: str = Field(default_factory=lambda: "user_" + str(uuid.uuid4()), primary_key=True)
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=1, max_length=500, unique=True, index=True)
    password_hash: str = Field(min_length=1, max_length=255)
    last_login: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow)

class Goal(SQLModel, table=True):
    __tablename__ = "goals"

    id: str = Field(default_factory=lambda: "goal_" + str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)

    name: str = Field(max_length=200)
    description: str = Field(max_length=1000)
    completed: bool = Field(default=False)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class ResetToken(SQLModel, table=True):
    __tablename__ = "reset_tokens"

    id: str = Field(default_factory=lambda: "reset_" + str(uuid.uuid4()), primary_key=True)
    # One live token per user
    user_id: str = Field(foreign_key="user.id", unique=True)
    # SHA-256 of the raw token, the raw value is never stored
    token_hash: str = Field(max_length=64, unique=True, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

class RevokedToken(SQLModel, table=True):
    __tablename__ = "revoked_tokens"

    jti: str = Field(primary_key=True, max_length=64)
    user_id: str = Field(foreign_key="user.id", index=True)
    expires_at: datetime

####################
#   DB Functions   #
####################

def create_database_engine(database_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


def create_db_and_tables(engine):
    logging.info("Creating database and tables...")
    try:
        SQLModel.metadata.create_all(engine)
        logging.info("Database and tables created successfully")
    except Exception as e:
        logging.error(f"Error creating database and tables: {e}")
        raise


def get_session(request: Request):
    """Database session scoped to a single request."""
    with Session(request.app.state.database_engine) as session:
        yield session


####################
#   Auth Models    #
####################

# Fields are optional so that missing values are reported as a 400 by the handlers
class UserCreate(SQLModel):
    name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[str] = Field(default=None, max_length=500)
    password: Optional[str] = Field(default=None, max_length=72)

class UserLogin(SQLModel):
    email: Optional[str] = None
    password: Optional[str] = None

class ForgotPasswordRequest(SQLModel):
    email: Optional[str] = None

class ResetPasswordRequest(SQLModel):
    password: Optional[str] = Field(default=None, max_length=72)

class UpdatePasswordRequest(SQLModel):
    oldpassword: Optional[str] = None
    newpassword: Optional[str] = Field(default=None, max_length=72)

class UserResponse(SQLModel):
    id: str
    name: str
    email: str
    last_login: datetime
    created_at: datetime

class UserWithToken(UserResponse):
    token: str

####################
#   Goal Models    #
####################

class GoalCreate(SQLModel):
    name: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)

class GoalUpdate(SQLModel):
    name: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    completed: Optional[bool] = None
