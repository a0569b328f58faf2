"""Pydantic schemas for identity and profile endpoints."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from watchme.domain.identity.models import MovieInteractionRecord, RatedMovie, UserProfile, Watchlist

MediaType = Literal["movie", "tv"]


class MovieRecord(BaseModel):
	movie_id: int = Field(..., ge=1)
	media_type: MediaType
	title: str = Field(default="", max_length=300)
	poster_path: Optional[str] = Field(default=None, max_length=300)

	def to_model(self) -> MovieInteractionRecord:
		return MovieInteractionRecord(
			movie_id=self.movie_id,
			media_type=self.media_type,
			title=self.title,
			poster_path=self.poster_path,
		)

	@classmethod
	def from_model(cls, record: MovieInteractionRecord) -> "MovieRecord":
		return cls(
			movie_id=record.movie_id,
			media_type=record.media_type,  # type: ignore[arg-type]
			title=record.title,
			poster_path=record.poster_path,
		)


class RatedMovieOut(BaseModel):
	movie_id: int
	media_type: MediaType
	rating: int

	@classmethod
	def from_model(cls, rated: RatedMovie) -> "RatedMovieOut":
		return cls(movie_id=rated.movie_id, media_type=rated.media_type, rating=rated.rating)  # type: ignore[arg-type]


class WatchlistOut(BaseModel):
	id: str
	name: str
	movies: List[MovieRecord] = Field(default_factory=list)

	@classmethod
	def from_model(cls, watchlist: Watchlist) -> "WatchlistOut":
		return cls(
			id=watchlist.id,
			name=watchlist.name,
			movies=[MovieRecord.from_model(movie) for movie in watchlist.movies],
		)


class PublicProfile(BaseModel):
	uid: str
	username: str
	display_name: Optional[str] = None
	photo_url: Optional[str] = None
	bio: Optional[str] = None

	@classmethod
	def from_model(cls, profile: UserProfile) -> "PublicProfile":
		return cls(
			uid=profile.uid,
			username=profile.username,
			display_name=profile.display_name,
			photo_url=profile.photo_url,
			bio=profile.bio,
		)


class ProfileOut(PublicProfile):
	email: Optional[str] = None
	is_anonymous: bool = False
	liked_movies: List[MovieRecord] = Field(default_factory=list)
	disliked_movies: List[MovieRecord] = Field(default_factory=list)
	watched_movies: List[MovieRecord] = Field(default_factory=list)
	rated_movies: List[RatedMovieOut] = Field(default_factory=list)
	friends: List[str] = Field(default_factory=list)
	outgoing_requests: List[str] = Field(default_factory=list)
	incoming_requests: List[str] = Field(default_factory=list)
	watchlists: List[WatchlistOut] = Field(default_factory=list)
	active_blends_with: List[str] = Field(default_factory=list)
	created_at: Optional[str] = None

	@classmethod
	def from_model(cls, profile: UserProfile) -> "ProfileOut":
		return cls(
			uid=profile.uid,
			username=profile.username,
			display_name=profile.display_name,
			photo_url=profile.photo_url,
			bio=profile.bio,
			email=profile.email,
			is_anonymous=profile.is_anonymous,
			liked_movies=[MovieRecord.from_model(item) for item in profile.liked_movies],
			disliked_movies=[MovieRecord.from_model(item) for item in profile.disliked_movies],
			watched_movies=[MovieRecord.from_model(item) for item in profile.watched_movies],
			rated_movies=[RatedMovieOut.from_model(item) for item in profile.rated_movies],
			friends=list(profile.friends),
			outgoing_requests=list(profile.outgoing_requests),
			incoming_requests=list(profile.incoming_requests),
			watchlists=[WatchlistOut.from_model(item) for item in profile.watchlists],
			active_blends_with=list(profile.active_blends_with),
			created_at=profile.created_at,
		)


class ProfileUpdateRequest(BaseModel):
	display_name: Optional[str] = Field(default=None, max_length=80)
	bio: Optional[str] = Field(default=None, max_length=500)
	username: Optional[str] = Field(default=None, max_length=30)


class RegisterRequest(BaseModel):
	email: EmailStr
	password: str = Field(..., min_length=6, max_length=256)
	display_name: Optional[str] = Field(default=None, max_length=80)


class LoginRequest(BaseModel):
	email: EmailStr
	password: str = Field(..., min_length=1, max_length=256)


class GoogleSignInRequest(BaseModel):
	id_token: str = Field(..., min_length=10)


class LinkPasswordRequest(BaseModel):
	email: EmailStr
	password: str = Field(..., min_length=6, max_length=256)


class RefreshRequest(BaseModel):
	refresh_token: str = Field(..., min_length=10)


class LogoutRequest(BaseModel):
	refresh_token: Optional[str] = None


class SessionResponse(BaseModel):
	user_id: str
	is_anonymous: bool
	access_token: str
	refresh_token: str
	token_type: Literal["bearer"] = "bearer"
	expires_in: int


class PhotoUploadResponse(BaseModel):
	photo_url: str
