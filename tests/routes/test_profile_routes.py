"""Tests for the profile page and profile updates."""
from __future__ import annotations

import os

import pytest

from bookpub import models
from bookpub.config import settings
from bookpub.uploads import UploadKind, resolve_public_path


@pytest.fixture
def alice(client, register):
    register(client)
    return client


def _alice(db) -> models.User:
    db.expire_all()
    return db.query(models.User).filter(models.User.username == "alice").one()


def test_profile_lists_only_own_books(alice, make_client, register, create_book):
    bob = make_client()
    register(bob, "bob")
    create_book(alice, title="Mine")
    create_book(bob, title="Theirs")

    page = alice.get("/userprofile")

    assert "Mine" in page.text
    assert "Theirs" not in page.text


def test_update_profile_truncates_bio(alice, db):
    resp = alice.post(
        "/updateprofile",
        data={"bio": "b" * 60, "profile_picture": "https://img.example.com/me.png"},
        follow_redirects=False,
    )

    assert resp.headers["location"] == "/userprofile"
    user = _alice(db)
    assert user.bio == "b" * 50
    assert user.profile_picture == "https://img.example.com/me.png"
    assert "Profile updated successfully!" in alice.get("/userprofile").text


def test_blank_picture_keeps_existing_one(alice, db):
    alice.post("/updateprofile", data={"bio": "hello", "profile_picture": "   "})

    user = _alice(db)
    assert user.bio == "hello"
    assert user.profile_picture == settings.DEFAULT_AVATAR


def test_profile_page_reflects_fresh_data(alice, db):
    user = _alice(db)
    user.bio = "changed elsewhere"
    db.commit()

    assert "changed elsewhere" in alice.get("/userprofile").text


def test_upload_profile_picture(alice, db):
    resp = alice.post(
        "/upload-profile-pic",
        files={"profile_picture_file": ("me.png", b"\x89PNG fake", "image/png")},
        follow_redirects=False,
    )

    assert resp.headers["location"] == "/userprofile"
    user = _alice(db)
    assert user.profile_picture.startswith("/uploads/profiles/profile-")
    assert os.path.isfile(resolve_public_path(user.profile_picture))
    assert "Profile picture uploaded successfully!" in alice.get("/userprofile").text


def test_upload_profile_picture_rejects_non_image(alice, db):
    resp = alice.post(
        "/upload-profile-pic",
        files={"profile_picture_file": ("me.txt", b"hello", "text/plain")},
        follow_redirects=False,
    )

    assert resp.headers["location"] == "/userprofile"
    assert "Images only" in alice.get("/userprofile").text
    assert _alice(db).profile_picture == settings.DEFAULT_AVATAR
    assert os.listdir(UploadKind.PROFILE.directory) == []


def test_upload_profile_picture_too_large(alice, db, monkeypatch):
    monkeypatch.setattr(settings, "MAX_PROFILE_PIC_MB", 0)

    alice.post(
        "/upload-profile-pic",
        files={"profile_picture_file": ("me.png", b"\x89PNG fake", "image/png")},
    )

    assert _alice(db).profile_picture == settings.DEFAULT_AVATAR
    assert os.listdir(UploadKind.PROFILE.directory) == []


def test_upload_without_file(alice):
    resp = alice.post("/upload-profile-pic", data={}, follow_redirects=False)

    assert resp.headers["location"] == "/userprofile"
    assert "Please select an image file to upload" in alice.get("/userprofile").text


def test_profile_updates_require_login(client):
    resp = client.post("/updateprofile", data={"bio": "x"}, follow_redirects=False)

    assert resp.headers["location"] == "/login"
