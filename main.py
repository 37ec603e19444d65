"""WSGI entrypoint for the recipe box.

Local development can use ``flask --app main run``, which imports the ``app``
object defined below. Storage is chosen through ``RECIPEBOX_STORAGE``.
"""

from recipebox import create_app

app = create_app()


__all__ = ["app"]
