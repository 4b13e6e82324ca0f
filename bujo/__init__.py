"""Bullet-journal backend: bitemporal entry storage and editable day documents."""
