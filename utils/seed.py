from sqlalchemy import inspect

from models import db
from models.enums import RoleName
from models.user import Role

DEFAULT_ROLES = [r.value for r in RoleName]

def seed_roles():
    # nothing to seed before the first migration has run
    if not inspect(db.engine).has_table(Role.__tablename__):
        return
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()
