from spicedlings_shared.types import ServiceType

configs = {
    'first_name': 'Thorsten',
    'last_name': 'Staender',
    'cohort': 'Jasmine',
    'sub_domain': 'aloha',
    'repository': {
        'github_owner': 'OliverSieweke',
        'repo_name': 'jasmine-petition',
        'branch': 'Thorsten',
        'invited_github_username': 'OliverSieweke',
    },
    'services': [
        {
            'type': ServiceType.NODE_SERVER,
            'name': 'Node Server',
            'configs': {
                'database_url_environment_variable': 'DATABASE_URL',
                'port_environment_variable': 'PORT',
                'build_step': False,
            },
        },
        {
            'type': ServiceType.POSTGRES,
            'name': 'Postgres',
            'configs': {
                'db_setup_script_path': './init.sql',
            },
        },
    ],
}
