from spicedlings_shared.types import ServiceType

configs = {
    'first_name': 'Daniel',
    'last_name': 'Streif',
    'cohort': 'Jasmine',
    'sub_domain': 'climbers-paradise',
    'repository': {
        'github_owner': 'danielstreif',
        'repo_name': 'final-project',
        'branch': 'main',
        'invited_github_username': 'OliverSieweke',
    },
    'services': [
        {
            'type': ServiceType.NODE_SERVER,
            'name': 'Node Server',
            'configs': {
                'database_url_environment_variable': 'DATABASE_URL',
                'port_environment_variable': 'PORT',
                'build_step': True,
            },
            'environment': {
                'MAX_AGE': 7 * 24 * 60 * 60 * 1000,
                'SOCKET_URL': 'http://climbers-paradise.oliversieweke.com',
            },
            'secret_environment_variables': {'MAPBOX_KEY'},
            'random_secret_environment_variables': {'SESSION_SECRET'},
        },
        {
            'type': ServiceType.POSTGRES,
            'name': 'Postgres',
            'configs': {
                'db_setup_script_path': './setup.sql',
            },
        },
    ],
}
