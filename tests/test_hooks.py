import pytest

from dbgraphql import Compiler, ConfigurationError, EngineConfig, Resolver, SchemaDescriptor


def _resolver():
    schema = SchemaDescriptor.from_dict({
        'users': {'columns': [{'name': 'id', 'type': 'integer', 'primary': True}, {'name': 'username', 'type': 'text'}]},
        'posts': {
            'columns': [{'name': 'id', 'type': 'integer', 'primary': True}, {'name': 'users_id', 'type': 'integer'}],
            'foreign_keys': [{'column': 'users_id', 'referenced_table': 'users', 'referenced_column': 'id'}],
        },
    })
    compiler = Compiler(schema)
    compiler.build_schema()
    resolver = Resolver()
    resolver.register_schema(compiler)
    return resolver


@pytest.mark.asyncio
async def test_rejected_field_never_invokes_resolver():
    resolver = _resolver()
    calls = []
    resolver.add('Query', 'getUsers', lambda parent, args, ctx: calls.append('ran') or {'total': 0, 'items': []})
    resolver.on_before(
        lambda type_name, field_name, parent, args, context: field_name != 'getUsers',
        lambda type_name, field_name, parent, args, context: {'denied': f"{type_name}.{field_name}"},
    )
    resolvers = resolver.get_resolvers()
    result = await resolvers['Query']['getUsers'](None, {}, {'user': None})
    assert result == {'denied': 'Query.getUsers'}
    assert calls == []


@pytest.mark.asyncio
async def test_gate_sees_arguments_and_context():
    resolver = _resolver()
    seen = []

    async def validator(type_name, field_name, parent, args, context):
        seen.append((type_name, field_name, parent, args, context))
        return context.get('admin', False)

    resolver.add('Posts', 'users', lambda parent, args, ctx: {'id': parent['users_id']})
    resolver.on_before(validator)
    fn = resolver.get_resolvers()['Posts']['users']
    assert await fn({'users_id': 7}, {'filter': 'x=1'}, {'admin': False}) is None
    assert await fn({'users_id': 7}, {}, {'admin': True}) == {'id': 7}
    assert seen[0] == ('Posts', 'users', {'users_id': 7}, {'filter': 'x=1'}, {'admin': False})


@pytest.mark.asyncio
async def test_last_on_before_wins_and_keeps_previous_rejected():
    resolver = _resolver()
    resolver.add('Query', 'ping', lambda parent, args, ctx: 'pong')
    resolver.on_before(lambda *a: False, lambda *a: 'nope')
    resolver.on_before(lambda *a: False)
    fn = resolver.get_resolvers()['Query']['ping']
    assert await fn(None, {}) == 'nope'
    resolver.on_before(lambda *a: True)
    # Hook is read at call time, so existing resolver maps see the change
    assert await fn(None, {}) == 'pong'


@pytest.mark.asyncio
async def test_hook_configured_through_engine_config():
    from dbgraphql import BeforeHook
    config = EngineConfig(before_hook=BeforeHook(validator=lambda *a: False, rejected=lambda *a: 'cfg'))
    resolver = Resolver(config=config)
    resolver.add('Query', 'ping', lambda parent, args, ctx: 'pong')
    assert await resolver.get_resolvers()['Query']['ping'](None, {}) == 'cfg'


@pytest.mark.asyncio
async def test_override_replaces_only_its_field():
    resolver = _resolver()
    before = resolver.get_resolvers()
    assert set(before['Query']) == {'getUsers', 'getFirstOfUsers', 'getPosts', 'getFirstOfPosts'}

    resolver.add('Query', 'getFirstOfUsers', lambda parent, args, ctx: {'id': 1, 'username': 'override'})
    assert resolver.entry('Query', 'getFirstOfUsers').override is not None
    for key in ('getUsers', 'getPosts', 'getFirstOfPosts'):
        assert resolver.entry('Query', key).override is None
    assert resolver.entry('Posts', 'users').override is None
    result = await resolver.get_resolvers()['Query']['getFirstOfUsers'](None, {})
    assert result['username'] == 'override'


@pytest.mark.asyncio
async def test_override_receives_context_and_can_delegate():
    resolver = _resolver()
    seen = {}

    async def default(parent, args, ctx):
        return {'id': 1, 'username': 'alice'}

    async def override(parent, args, ctx):
        seen['table'] = ctx.table
        seen['resolver'] = ctx.resolver
        seen['request'] = ctx.request
        row = await ctx.resolve_default(parent, args)
        return dict(row, username=row['username'].upper())

    resolver.entry('Query', 'getFirstOfUsers').default = default
    resolver.on('Query', 'getFirstOfUsers', override)
    result = await resolver.get_resolvers()['Query']['getFirstOfUsers'](None, {}, {'req': 1})
    assert result == {'id': 1, 'username': 'ALICE'}
    assert seen == {'table': 'users', 'resolver': resolver, 'request': {'req': 1}}


@pytest.mark.asyncio
async def test_resolve_default_without_default_fails_fast():
    resolver = Resolver()

    async def override(parent, args, ctx):
        return await ctx.resolve_default(parent, args)

    resolver.add('Query', 'custom', override)
    with pytest.raises(ConfigurationError):
        await resolver.get_resolvers()['Query']['custom'](None, {})


def test_without_connection_only_overrides_are_exposed():
    resolver = _resolver()
    resolver.add('Query', 'getAPIName', lambda parent, args, ctx: 'blog')
    exposed = resolver.get_resolvers(has_connection=False)
    assert {t: set(f) for t, f in exposed.items()} == {'Query': {'getAPIName'}}


def test_add_validates_arguments():
    resolver = Resolver()
    with pytest.raises(ConfigurationError):
        resolver.add('', 'f', lambda *a: None)
    with pytest.raises(ConfigurationError):
        resolver.add('Query', 'f', 'not callable')


def test_overrides_survive_schema_refresh():
    resolver = _resolver()
    handler = lambda parent, args, ctx: None  # noqa: E731
    resolver.add('Query', 'getUsers', handler)
    compiler = Compiler(SchemaDescriptor.from_dict({'users': {'columns': [{'name': 'id', 'type': 'integer', 'primary': True}]}}))
    compiler.build_schema()
    resolver.register_schema(compiler)
    assert resolver.entry('Query', 'getUsers').override is handler
    assert resolver.entry('Query', 'getPosts') is None
    assert resolver.entry('Posts', 'users') is None
