"""
Denormalised counters.

Every counter change is a relative ``UPDATE ... SET col = col + delta`` so two
concurrent writers both land; nothing reads a value and writes it back.
Decrements only apply while the counter is still large enough, which keeps
it from going below zero.
"""
from sqlalchemy import update

from cheapbite.extensions import db


def bump_counter(model, pk: str, column: str, delta: int) -> int:
    """Apply ``delta`` to ``model.column`` for row ``pk``; returns rows changed."""
    col  = getattr(model, column)
    stmt = update(model).where(model.id == pk)
    if delta < 0:
        stmt = stmt.where(col >= -delta)
    stmt = stmt.values({column: col + delta}).execution_options(synchronize_session=False)
    return db.session.execute(stmt).rowcount
