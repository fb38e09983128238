from __future__ import annotations

from deliverypref.models import User
from deliverypref.seed import seed_demo_user

from conftest import SEED_EMAIL, SEED_PASSWORD


def test_seed_is_idempotent(app, settings):
    with app.state.session_factory() as db:
        first = db.query(User).filter(User.email == SEED_EMAIL).one()
        again = seed_demo_user(db, settings, app.state.passwords)

        assert again.id == first.id
        assert db.query(User).count() == 1
        assert app.state.passwords.verify(SEED_PASSWORD, again.password_hash)
