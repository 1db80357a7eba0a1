# mirror/router.py
"""
Database router: mirror models live only in the mirror database and
everything else only in the primary one.
"""

from django.conf import settings


MIRROR_APP_LABEL = "mirror"


def _mirror_alias() -> str:
    return getattr(settings, "MIRROR_DATABASE_ALIAS", "mirror")


class MirrorRouter:
    def db_for_read(self, model, **hints):
        if model._meta.app_label == MIRROR_APP_LABEL:
            return _mirror_alias()
        return None

    def db_for_write(self, model, **hints):
        if model._meta.app_label == MIRROR_APP_LABEL:
            return _mirror_alias()
        return None

    def allow_relation(self, obj1, obj2, **hints):
        mirror1 = obj1._meta.app_label == MIRROR_APP_LABEL
        mirror2 = obj2._meta.app_label == MIRROR_APP_LABEL
        if mirror1 or mirror2:
            return mirror1 and mirror2
        return None

    def allow_migrate(self, db, app_label, model_name=None, **hints):
        if app_label == MIRROR_APP_LABEL:
            return db == _mirror_alias()
        if db == _mirror_alias():
            return False
        return None
