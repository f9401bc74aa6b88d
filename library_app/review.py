from __future__ import annotations


class Review:
    """A rating with a comment left on a book, by a member or a guest."""

    def __init__(self, bookId: int, username: str, rating: int, comment: str,
                 id: int | None = None, userId: int | None = None,
                 createdAt: str | None = None, updatedAt: str | None = None,
                 book_title: str | None = None, user_name: str | None = None) -> None:
        self.id = id
        self.bookId = bookId
        self.userId = userId
        self.username = username
        self.rating = rating
        self.comment = comment
        self.createdAt = createdAt
        self.updatedAt = updatedAt
        # Filled in by the admin listing joins
        self.book_title = book_title
        self.user_name = user_name

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "bookId": self.bookId,
            "userId": self.userId,
            "username": self.username,
            "rating": self.rating,
            "comment": self.comment,
            "createdAt": self.createdAt,
            "updatedAt": self.updatedAt,
        }
        if self.book_title is not None:
            data["book_title"] = self.book_title
        if self.user_name is not None:
            data["user_name"] = self.user_name
        return data

    @staticmethod
    def from_dict(data: dict) -> "Review":
        return Review(
            id=data.get("id"),
            bookId=data["bookId"],
            userId=data.get("userId"),
            username=data["username"],
            rating=data["rating"],
            comment=data["comment"],
            createdAt=data.get("createdAt"),
            updatedAt=data.get("updatedAt"),
            book_title=data.get("book_title"),
            user_name=data.get("user_name"),
        )
