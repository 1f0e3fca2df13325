from readerboard import create_app
from readerboard import firestore_dao as dao


def seed_database():
    app = create_app()
    with app.app_context():
        print("Creating profiles...")
        readers = [
            {'fid': 1020698, 'username': 'bookworm', 'displayName': 'Book Worm', 'notificationsEnabled': True},
            {'fid': 1044526, 'username': 'pagepilot', 'displayName': 'Page Pilot'},
            {'fid': 20001, 'username': 'slowreader', 'displayName': 'Slow Reader', 'notificationsEnabled': True},
        ]
        for reader in readers:
            goods_id = dao.save_profile(reader)
            print(f"  {reader['username']}: goodsID {goods_id}")

        print("Creating books...")
        dune = {
            'key': '/works/OL893415W',
            'title': 'Dune',
            'author_name': ['Frank Herbert'],
            'cover_i': 11481354,
            'first_publish_year': 1965,
        }
        left_hand = {
            'key': '/works/OL59863W',
            'title': 'The Left Hand of Darkness',
            'author_name': ['Ursula K. Le Guin'],
            'first_publish_year': 1969,
        }
        zine_key = dao.add_custom_book({
            'title': 'Neighbourhood Poetry Zine #3',
            'author_name': ['Various'],
            'description': 'A photocopied collection from the local library group.',
            'subjects': ['poetry', 'zines'],
        }, created_by=20001)
        zine = dict(dao.get_custom_book_details(zine_key))

        print("Logging books...")
        dune_review = dao.save_relationship(1020698, dune, 'completed', review='Spice, sand and politics. Loved it.')
        dao.save_relationship(1044526, dune, 'current')
        dao.save_relationship(1044526, left_hand, 'desired')
        dao.save_relationship(20001, zine, 'current', review='Short and lovely.')

        print("Adding reading logs...")
        dao.add_log(1044526, dune['key'], 120, thoughts='The dinner scene!', unit='pages')
        dao.add_log(1044526, dune['key'], 120, skipped=True)
        dao.add_log(20001, zine_key, 40, unit='percent')

        print("Adding likes and points...")
        dao.toggle_like(dune_review, 1044526)
        dao.toggle_like(dune_review, 20001)
        for reader in readers:
            dao.award_points(reader['fid'], app.config['DAILY_LOG_POINTS'])

        print("Done.")


if __name__ == '__main__':
    seed_database()
