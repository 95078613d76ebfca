import pytest
from types import SimpleNamespace

from dbgraphql import ConfigurationError, DBGraphQL, DriverKind, SQLiteDriver, get_driver


def test_add_field_requires_type_dot_field():
    api = DBGraphQL()
    with pytest.raises(ConfigurationError):
        api.add_field('justfield', 'String', lambda *a: None)
    with pytest.raises(ConfigurationError):
        api.add_input('InputOnly', 'String')


def test_add_field_is_fluent_and_renders_without_connection():
    api = DBGraphQL('demo')
    result = (
        api.add_field('Query.hello', 'String', lambda parent, args, ctx: 'hi', {'name': 'String'})
        .add_input('InputGreeting.name', 'String')
    )
    assert result is api
    sdl = api.get_schema()
    assert "getAPIName: String" in sdl
    assert "hello(name: String): String" in sdl
    assert "input InputGreeting {" in sdl
    assert set(api.get_resolvers()['Query']) == {'getAPIName', 'hello'}


@pytest.mark.asyncio
async def test_connect_without_engine_fails():
    with pytest.raises(ConfigurationError):
        await DBGraphQL('x').connect()


def test_unsupported_dialect_is_a_configuration_error():
    fake_engine = SimpleNamespace(dialect=SimpleNamespace(name='oracle'))
    with pytest.raises(ConfigurationError):
        get_driver(fake_engine)
    with pytest.raises(ConfigurationError):
        get_driver(fake_engine, 'db2')


def test_explicit_driver_kind(engine):
    driver = get_driver(engine, DriverKind.SQLITE)
    assert isinstance(driver, SQLiteDriver)
    assert 'integer' in driver.get_available_types()


@pytest.mark.asyncio
async def test_connect_builds_schema_and_resolvers(api):
    db_schema = await api.get_database_schema()
    assert set(db_schema) == {'users', 'categories', 'posts', 'comments'}
    posts = db_schema['posts']
    assert posts.primary_key == ['id']
    assert {(fk.column, fk.referenced_table) for fk in posts.foreign_keys} == {
        ('users_id', 'users'), ('categories_id', 'categories'),
    }
    plain = db_schema.to_dict()
    id_col = plain['users']['columns'][0]
    assert (id_col['name'], id_col['native_type'], id_col['is_primary_key']) == ('id', 'INTEGER', True)

    resolvers = api.get_resolvers()
    assert {'getAPIName', 'getPosts', 'getFirstOfPosts'} <= set(resolvers['Query'])
    assert 'putItemPosts' in resolvers['Mutation']
    assert {'users', 'categories'} <= set(resolvers['Posts'])
    assert 'integer' in api.available_types()


@pytest.mark.asyncio
async def test_exclude_skips_tables_and_their_relations(engine, populated_db):
    api = DBGraphQL(engine=engine, exclude=['comments', 'users'])
    await api.connect()
    sdl = api.get_schema()
    assert "type Comments" not in sdl
    assert "type Users" not in sdl
    assert "categories(filter: String, pagination: String): Categories" in sdl
    assert "users(filter" not in sdl


@pytest.mark.asyncio
async def test_refresh_keeps_overrides_and_names(api):
    sdl = api.get_schema()
    handler = lambda parent, args, ctx: None  # noqa: E731
    api.add('Query', 'getFirstOfUsers', 'Users', handler, {'filter': 'String', 'pagination': 'String'})
    await api.get_database_schema(refresh=True)
    assert api.resolver.entry('Query', 'getFirstOfUsers').override is handler
    assert api.get_schema(refresh=True) == sdl


@pytest.mark.asyncio
async def test_schema_text_is_cached(api):
    first = api.get_schema()
    assert api.get_schema() is first
    api.add_field('Users.shout', 'String', lambda parent, args, ctx: parent['username'].upper())
    assert "shout: String" in api.get_schema()
