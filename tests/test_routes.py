from unittest.mock import patch

from readerboard import firestore_dao as dao


def test_health(client):
    assert client.get('/health').get_json() == {'status': 'ok'}


def test_save_and_get_profile(client, fake_db):
    response = client.post('/api/users', json={'fid': 42, 'username': 'alice', 'displayName': 'Alice'})

    assert response.status_code == 200
    assert response.get_json() == {'success': True, 'goodsID': 1}
    profile = client.get('/api/users/42').get_json()
    assert profile['username'] == 'alice'
    assert client.get('/api/users/43').status_code == 404


def test_save_profile_requires_fid(client, fake_db):
    response = client.post('/api/users', json={'username': 'nobody'})

    assert response.status_code == 400
    assert 'fid' in response.get_json()['fields']
    assert fake_db.docs == {}


def test_notifications_toggle(client):
    assert client.put('/api/users/42/notifications', json={'enabled': True}).status_code == 404
    client.post('/api/users', json={'fid': 42, 'username': 'alice'})

    response = client.put('/api/users/42/notifications', json={'enabled': True})

    assert response.get_json()['notificationsEnabled'] is True
    assert dao.get_user_profile(42)['notificationsEnabled'] is True


def test_library_flow(client, fake_db, dune):
    client.post('/api/users', json={'fid': 42, 'username': 'alice'})

    response = client.post('/api/library/42', json={'book': dune, 'status': 'current'})
    assert response.get_json() == {'success': True, 'id': '42_OL123W'}

    response = client.post('/api/library/42/logs', json={'bookKey': dune['key'], 'page': 80, 'unit': 'pages'})
    assert response.get_json()['pointsAwarded'] is True
    response = client.post('/api/library/42/logs', json={'bookKey': dune['key'], 'page': 80, 'skipped': True})
    assert response.get_json()['pointsAwarded'] is False

    logs = client.get('/api/library/42/logs', query_string={'bookKey': dune['key']}).get_json()['logs']
    assert [entry['page'] for entry in logs] == [80, 80]
    assert dao.get_user_profile(42)['currentPoints'] == 10

    books = client.get('/api/library/42').get_json()['books']
    assert books[0]['lastPageRead'] == 80

    response = client.patch('/api/library/42/status', json={'bookKey': dune['key'], 'status': 'completed'})
    assert response.status_code == 200
    assert dao.get_relationship(42, dune['key'])['status'] == 'completed'

    response = client.delete('/api/library/42/entry', query_string={'bookKey': dune['key']})
    assert response.status_code == 200
    assert client.get('/api/library/42/entry', query_string={'bookKey': dune['key']}).status_code == 404


def test_library_rejects_bad_input(client, dune):
    assert client.post('/api/library/42', json={'book': dune, 'status': 'shelved'}).status_code == 400
    assert client.post('/api/library/42', json={'status': 'current'}).status_code == 400
    assert client.post('/api/library/42/logs', json={'bookKey': dune['key']}).status_code == 400
    response = client.post('/api/library/42/logs', json={'bookKey': dune['key'], 'page': 3})
    assert response.status_code == 404


def test_status_change_keeps_review(client, dune):
    client.post('/api/library/42', json={'book': dune, 'status': 'current', 'review': 'So far so good'})
    client.post('/api/library/42', json={'book': dune, 'status': 'completed'})

    assert dao.get_relationship(42, dune['key'])['review'] == 'So far so good'


def test_like_endpoints(client, dune):
    rel_id = dao.save_relationship(42, dune, 'completed', review='Loved it')

    response = client.post(f'/api/reviews/{rel_id}/like', json={'fid': 7})
    assert response.get_json() == {'success': True, 'liked': True}
    assert client.get(f'/api/reviews/{rel_id}/like', query_string={'fid': 7}).get_json() == {'liked': True}

    feed = client.get('/api/reviews', query_string={'viewer': 7}).get_json()['reviews']
    assert feed[0]['likeCount'] == 1
    assert feed[0]['liked'] is True

    assert client.post('/api/reviews/1_OL0W/like', json={'fid': 7}).status_code == 404
    assert client.get(f'/api/reviews/{rel_id}/like').status_code == 400


def test_custom_book_endpoints(client):
    response = client.post('/api/books/custom', json={
        'title': 'Garden Notes',
        'author_name': ['June Park'],
        'description': 'Seasonal planting diary.',
        'createdBy': 42,
    })
    assert response.status_code == 201
    key = response.get_json()['key']

    book = client.get(f'/api/books/custom/{key}').get_json()
    assert book['author_name'] == ['June Park']

    assert client.patch(f'/api/books/custom/{key}', json={'description': 'Updated'}).status_code == 200
    book = client.get(f'/api/books/custom/{key}').get_json()
    assert book['description'] == 'Updated'
    assert book['title'] == 'Garden Notes'

    assert client.post('/api/books/custom', json={'description': 'no title'}).status_code == 400
    assert client.patch('/api/books/custom/OL1W', json={'title': 'x'}).status_code == 400


def test_book_search_combines_sources(client):
    dao.add_custom_book({'title': 'Dune Fan Guide'})
    docs = [{'key': '/works/OL123W', 'title': 'Dune', 'author_name': ['Frank Herbert']}]

    with patch('readerboard.routes.books.open_library.search_books', return_value=docs) as search:
        result = client.get('/api/books/search', query_string={'q': 'dune'}).get_json()

    search.assert_called_once_with('dune')
    assert result['books'] == docs
    assert [book['title'] for book in result['customBooks']] == ['Dune Fan Guide']
    assert client.get('/api/books/search').status_code == 400


def test_book_detail_includes_readers(client, dune):
    dao.save_profile({'fid': 42, 'username': 'alice'})
    dao.save_relationship(42, dune, 'current')
    details = {'key': dune['key'], 'title': 'Dune', 'description': 'Desert planet.', 'cover_i': 1}

    with patch('readerboard.routes.books.open_library.get_book_details', return_value=details):
        result = client.get('/api/books/detail', query_string={'key': dune['key']}).get_json()

    assert result['inCatalog'] is True
    assert result['book']['description'] == 'Desert planet.'
    assert result['book']['first_publish_year'] == 1965
    assert result['readers'][0]['username'] == 'alice'


def test_leaderboard_endpoint(client, fake_db):
    fake_db.put('users/1', {'fid': 1, 'currentPoints': 5})
    fake_db.put('users/2', {'fid': 2, 'currentPoints': 20})

    users = client.get('/api/users/leaderboard').get_json()['users']

    assert [user['fid'] for user in users] == [2, 1]


def test_admin_endpoints(client, fake_db):
    fake_db.put('users/1', {'fid': 1, 'joinNumber': 1})

    backfill = client.post('/api/admin/backfill-users').get_json()
    assert backfill == {'success': True, 'count': 1, 'lastId': 1}

    removed = client.post('/api/admin/remove-join-number').get_json()
    assert removed['count'] == 1

    reset = client.post('/api/admin/reset-goods-ids').get_json()
    assert reset['success'] is True
    assert reset['maxId'] == 3
    assert fake_db.data('users/1')['goodsID'] == 3


def test_admin_secret_enforced_when_configured(app, client):
    app.config['ADMIN_SECRET'] = 's3cret'

    assert client.post('/api/admin/backfill-users').status_code == 401
    response = client.post('/api/admin/backfill-users', headers={'Authorization': 'Bearer s3cret'})
    assert response.status_code == 200


def test_store_outage_returns_500(client, fake_db):
    fake_db.failing_paths.add('users')

    response = client.post('/api/admin/backfill-users')

    assert response.status_code == 500
    assert response.get_json()['success'] is False


def test_daily_notifications_skip_users_with_points_today(client, fake_db):
    for fid in (1, 2, 3):
        client.post('/api/users', json={'fid': fid, 'username': f'user{fid}'})
    dao.set_notifications_enabled(1, True)
    dao.set_notifications_enabled(2, True)
    dao.award_points(2, 10)

    with patch('readerboard.services.daily_reminder.send_notification', return_value=True) as send:
        result = client.get('/api/cron/send-daily-notifications').get_json()

    send.assert_called_once()
    assert send.call_args.args[0] == 1
    assert result == {'success': True, 'sentCount': 1, 'totalEnabled': 2, 'skipped': 1}


def test_cron_secret_enforced_when_configured(app, client):
    app.config['CRON_SECRET'] = 'tick'

    assert client.get('/api/cron/send-daily-notifications').status_code == 401


def test_book_search_by_isbn(client):
    found = {'key': '/works/OL123W', 'title': 'Dune', 'isbn': ['9780441013593']}

    with patch('readerboard.routes.books.open_library.get_book_by_isbn', return_value=found) as lookup:
        result = client.get('/api/books/search', query_string={'isbn': '9780441013593'}).get_json()
    lookup.assert_called_once_with('9780441013593')
    assert result == {'books': [found], 'customBooks': []}

    with patch('readerboard.routes.books.open_library.get_book_by_isbn', return_value=None):
        result = client.get('/api/books/search', query_string={'isbn': '0000000000'}).get_json()
    assert result['books'] == []
