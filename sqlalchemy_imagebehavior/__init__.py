""":mod:`sqlalchemy_imagebehavior` --- SQLAlchemy-ImageBehavior
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

This package provides a simple way to manage images of object-relationally
mapped entities whose columns hold the filenames of stored images.
Uploaded images are filtered (e.g. resized) and stored into physically
agnostic storage backends, thumbnails are made on demand, placeholders
are shown for missing images, and stored files follow the lifecycle of
their entities: they are renamed when the attribute they are named after
changes, and deleted with the entity.

Storage backends are reached through the narrow :class:`~.connector.
Connector` interface, so you can easily implement a new one.  See
:mod:`sqlalchemy_imagebehavior.behavior` to get started.

"""
