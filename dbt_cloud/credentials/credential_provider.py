import abc
from typing import Dict, Union


class BaseProvider:
    def __init__(self, config: dict):
        self.config = config

    @abc.abstractmethod
    def get_credentials(self, lookup: Union[str, Dict[str, str]]):
        pass
