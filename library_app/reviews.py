from typing import List, Optional

from .database import get_db_connection
from .review import Review

_REVIEW_SELECT = """
    SELECT r.id, r.bookId, r.userId, COALESCE(u.name, r.username) AS username,
           r.rating, r.comment, r.createdAt, r.updatedAt
    FROM reviews r
    LEFT JOIN users u ON r.userId = u.id
"""


class ReviewBoard:
    """Reviews left on books. Member reviews show the member's current name."""

    def list_for_book(self, book_id: int) -> List[Review]:
        conn = get_db_connection()
        try:
            rows = conn.execute(
                _REVIEW_SELECT + " WHERE r.bookId = ? ORDER BY r.createdAt DESC, r.id DESC", (book_id,)
            ).fetchall()
            return [Review.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    def list_all(self) -> List[Review]:
        """Every review with the reviewer's and the book's names, newest first."""
        conn = get_db_connection()
        try:
            rows = conn.execute(
                """
                SELECT r.*, u.name AS user_name, b.title AS book_title
                FROM reviews r
                LEFT JOIN users u ON r.userId = u.id
                LEFT JOIN books b ON r.bookId = b.id
                ORDER BY r.createdAt DESC, r.id DESC
                """
            ).fetchall()
            return [Review.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    def get(self, review_id: int) -> Optional[Review]:
        conn = get_db_connection()
        try:
            row = conn.execute(_REVIEW_SELECT + " WHERE r.id = ?", (review_id,)).fetchone()
            return Review.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def create(self, book_id: int, username: str, rating: int, comment: str,
               user_id: Optional[int] = None) -> Review:
        self._check_rating(rating)
        if not comment or not comment.strip():
            raise ValueError("Review comment is required")
        if not username or not username.strip():
            raise ValueError("Username is required")
        conn = get_db_connection()
        try:
            cursor = conn.execute(
                "INSERT INTO reviews (bookId, userId, username, rating, comment) VALUES (?, ?, ?, ?, ?)",
                (book_id, user_id, username.strip(), rating, comment.strip()),
            )
            conn.commit()
            review_id = cursor.lastrowid
        finally:
            conn.close()
        return self.get(review_id)

    def update(self, review_id: int, rating: Optional[int] = None, comment: Optional[str] = None) -> Optional[Review]:
        """Partial update; only the fields that are given change."""
        fields, values = [], []
        if rating is not None:
            self._check_rating(rating)
            fields.append("rating = ?")
            values.append(rating)
        if comment is not None:
            if not comment.strip():
                raise ValueError("Review comment cannot be empty")
            fields.append("comment = ?")
            values.append(comment.strip())
        if not fields:
            raise ValueError("No valid fields to update")
        conn = get_db_connection()
        try:
            cursor = conn.execute(
                f"UPDATE reviews SET {', '.join(fields)}, updatedAt = CURRENT_TIMESTAMP WHERE id = ?",
                (*values, review_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
        finally:
            conn.close()
        return self.get(review_id)

    def delete(self, review_id: int) -> bool:
        conn = get_db_connection()
        try:
            cursor = conn.execute("DELETE FROM reviews WHERE id = ?", (review_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    @staticmethod
    def _check_rating(rating: Optional[int]) -> None:
        if rating is None or not 1 <= int(rating) <= 5:
            raise ValueError("Rating must be between 1 and 5")
