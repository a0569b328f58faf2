"""User document model and the value objects embedded in it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from watchme.infra.docstore import SERVER_TIMESTAMP, DocumentSnapshot

MEDIA_TYPES = ("movie", "tv")

USER_ARRAY_FIELDS = (
	"liked_movies",
	"disliked_movies",
	"watched_movies",
	"rated_movies",
	"friends",
	"outgoing_requests",
	"incoming_requests",
	"watchlists",
	"active_blends_with",
)

TitleKey = Tuple[int, str]


def user_path(uid: str) -> str:
	return f"users/{uid}"


def credentials_path(provider: str, subject: str) -> str:
	return f"credentials/{provider}:{subject}"


def username_path(username: str) -> str:
	return f"usernames/{username}"


@dataclass(slots=True)
class MovieInteractionRecord:
	"""A title embedded in a user array; identity is the (movie_id, media_type) key."""

	movie_id: int
	media_type: str
	title: str = ""
	poster_path: Optional[str] = None

	@property
	def key(self) -> TitleKey:
		return (int(self.movie_id), str(self.media_type))

	@classmethod
	def from_doc(cls, data: Mapping[str, Any]) -> "MovieInteractionRecord":
		return cls(
			movie_id=int(data["movie_id"]),
			media_type=str(data.get("media_type") or "movie"),
			title=str(data.get("title") or ""),
			poster_path=data.get("poster_path"),
		)

	def to_doc(self) -> Dict[str, Any]:
		return {
			"movie_id": int(self.movie_id),
			"media_type": self.media_type,
			"title": self.title,
			"poster_path": self.poster_path,
		}


def record_key(data: Mapping[str, Any]) -> TitleKey:
	return (int(data["movie_id"]), str(data.get("media_type") or "movie"))


@dataclass(slots=True)
class RatedMovie:
	movie_id: int
	media_type: str
	rating: int

	@property
	def key(self) -> TitleKey:
		return (int(self.movie_id), str(self.media_type))

	@classmethod
	def from_doc(cls, data: Mapping[str, Any]) -> "RatedMovie":
		return cls(
			movie_id=int(data["movie_id"]),
			media_type=str(data.get("media_type") or "movie"),
			rating=int(data.get("rating") or 0),
		)

	def to_doc(self) -> Dict[str, Any]:
		return {"movie_id": int(self.movie_id), "media_type": self.media_type, "rating": int(self.rating)}


@dataclass(slots=True)
class Watchlist:
	id: str
	name: str
	movies: List[MovieInteractionRecord] = field(default_factory=list)

	def contains(self, key: TitleKey) -> bool:
		return any(movie.key == key for movie in self.movies)

	@classmethod
	def from_doc(cls, data: Mapping[str, Any]) -> "Watchlist":
		return cls(
			id=str(data["id"]),
			name=str(data.get("name") or ""),
			movies=[MovieInteractionRecord.from_doc(item) for item in data.get("movies") or []],
		)

	def to_doc(self) -> Dict[str, Any]:
		return {"id": self.id, "name": self.name, "movies": [movie.to_doc() for movie in self.movies]}


@dataclass(slots=True)
class UserProfile:
	uid: str
	email: Optional[str]
	is_anonymous: bool
	username: str
	display_name: Optional[str] = None
	photo_url: Optional[str] = None
	bio: Optional[str] = None
	liked_movies: List[MovieInteractionRecord] = field(default_factory=list)
	disliked_movies: List[MovieInteractionRecord] = field(default_factory=list)
	watched_movies: List[MovieInteractionRecord] = field(default_factory=list)
	rated_movies: List[RatedMovie] = field(default_factory=list)
	friends: List[str] = field(default_factory=list)
	outgoing_requests: List[str] = field(default_factory=list)
	incoming_requests: List[str] = field(default_factory=list)
	watchlists: List[Watchlist] = field(default_factory=list)
	active_blends_with: List[str] = field(default_factory=list)
	created_at: Optional[str] = None

	@classmethod
	def from_doc(cls, uid: str, data: Mapping[str, Any]) -> "UserProfile":
		return cls(
			uid=str(data.get("uid") or uid),
			email=data.get("email"),
			is_anonymous=bool(data.get("is_anonymous", False)),
			username=str(data.get("username") or ""),
			display_name=data.get("display_name"),
			photo_url=data.get("photo_url"),
			bio=data.get("bio"),
			liked_movies=[MovieInteractionRecord.from_doc(item) for item in data.get("liked_movies") or []],
			disliked_movies=[MovieInteractionRecord.from_doc(item) for item in data.get("disliked_movies") or []],
			watched_movies=[MovieInteractionRecord.from_doc(item) for item in data.get("watched_movies") or []],
			rated_movies=[RatedMovie.from_doc(item) for item in data.get("rated_movies") or []],
			friends=[str(item) for item in data.get("friends") or []],
			outgoing_requests=[str(item) for item in data.get("outgoing_requests") or []],
			incoming_requests=[str(item) for item in data.get("incoming_requests") or []],
			watchlists=[Watchlist.from_doc(item) for item in data.get("watchlists") or []],
			active_blends_with=[str(item) for item in data.get("active_blends_with") or []],
			created_at=data.get("created_at"),
		)

	@classmethod
	def from_snapshot(cls, snapshot: DocumentSnapshot) -> "UserProfile":
		return cls.from_doc(snapshot.id, snapshot.data or {})

	def is_friend(self, other_uid: str) -> bool:
		return other_uid in self.friends


def new_profile_doc(
	uid: str,
	*,
	email: Optional[str],
	is_anonymous: bool,
	username: str,
	display_name: Optional[str] = None,
	photo_url: Optional[str] = None,
) -> Dict[str, Any]:
	doc: Dict[str, Any] = {
		"uid": uid,
		"email": email,
		"is_anonymous": is_anonymous,
		"username": username,
		"display_name": display_name,
		"photo_url": photo_url,
		"bio": None,
		"created_at": SERVER_TIMESTAMP,
	}
	for name in USER_ARRAY_FIELDS:
		doc[name] = []
	return doc
