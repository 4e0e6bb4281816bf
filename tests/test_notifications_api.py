from ticketpal.models import Notification, PushToken


def add_notification(db_session, user, title, read=False):
    notification = Notification(
        user_id=user.id, type="TICKET_STATUS_UPDATE", title=title, body="Body", read=read
    )
    db_session.add(notification)
    db_session.commit()
    return notification


def test_list_notifications_with_unread_count(client, db_session, user, other_user, auth_headers):
    add_notification(db_session, user, "First", read=True)
    add_notification(db_session, user, "Second")
    add_notification(db_session, other_user, "Not mine")

    data = client.get("/notifications", headers=auth_headers).json()

    assert [n["title"] for n in data["notifications"]] == ["Second", "First"]
    assert data["unreadCount"] == 1

    unread = client.get("/notifications", params={"unread_only": True}, headers=auth_headers).json()
    assert [n["title"] for n in unread["notifications"]] == ["Second"]


def test_mark_read(client, db_session, user, auth_headers):
    notification = add_notification(db_session, user, "Deadline")

    response = client.post(f"/notifications/{notification.id}/read", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["read"] is True


def test_mark_read_other_users_notification(client, db_session, other_user, auth_headers):
    notification = add_notification(db_session, other_user, "Not mine")
    assert client.post(f"/notifications/{notification.id}/read", headers=auth_headers).status_code == 404


def test_register_push_token_moves_between_users(client, db_session, user, other_user, auth_headers):
    db_session.add(PushToken(user_id=other_user.id, token="ExponentPushToken[shared]"))
    db_session.commit()

    response = client.post(
        "/notifications/push-tokens",
        json={"token": "ExponentPushToken[shared]", "platform": "android"},
        headers=auth_headers,
    )

    assert response.json() == {"success": True}
    db_session.expire_all()
    token = db_session.query(PushToken).one()
    assert token.user_id == user.id
    assert token.platform == "android"


def test_unregister_push_token(client, db_session, user, auth_headers):
    db_session.add(PushToken(user_id=user.id, token="ExponentPushToken[mine]"))
    db_session.commit()

    response = client.delete("/notifications/push-tokens/ExponentPushToken[mine]", headers=auth_headers)

    assert response.status_code == 200
    assert db_session.query(PushToken).count() == 0
