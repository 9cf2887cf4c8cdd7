from spicedlings_shared.types import ServiceType

configs = {
    'first_name': 'Magali',
    'last_name': 'Gonçalves da Silva',
    'cohort': 'Jasmine',
    'sub_domain': 'purangaw',
    'repository': {
        'github_owner': 'OliverSieweke',
        'repo_name': 'purangaw',
        'branch': 'master',
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
        },
        {
            'type': ServiceType.POSTGRES,
            'name': 'Postgres',
            'configs': {
                'db_setup_script_path': './sql/init.sql',
            },
        },
    ],
}
