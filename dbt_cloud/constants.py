STATE_ACTIVE = 1
STATE_DELETED = 2

# default thread count of a newly created credential
NUM_THREADS_CREDENTIAL = 6

DEFAULT_HOST_URL = "https://cloud.getdbt.com/api"
DEFAULT_TIMEOUT = 30

DEFAULT_CONFIG_DIRECTORY = ".dbt_cloud"
