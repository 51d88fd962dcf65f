from sqlalchemy import event, select
from sqlalchemy.orm import declarative_base, object_session

from core.id_generator import MAX_ATTEMPTS, generate_random_id

Base = declarative_base()


class IdGenerationError(RuntimeError):
    """Не удалось подобрать свободный id за MAX_ATTEMPTS попыток."""


@event.listens_for(Base, "before_insert", propagate=True)
def assign_random_id(mapper, connection, target):
    if getattr(target, "id", None) is not None:
        return
    table = mapper.local_table
    # Id, выданные в этом же flush, ещё не видны в таблице
    issued = object_session(target).info.setdefault("issued_ids", set())
    for _ in range(MAX_ATTEMPTS):
        candidate = generate_random_id(table.name)
        if candidate in issued:
            continue
        taken = connection.execute(select(table.c.id).where(table.c.id == candidate)).first()
        if taken is None:
            issued.add(candidate)
            target.id = candidate
            return
    raise IdGenerationError(f"no free id for {table.name} after {MAX_ATTEMPTS} attempts")
