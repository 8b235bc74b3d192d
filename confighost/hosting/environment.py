"""宿主环境"""
from dataclasses import dataclass

DEVELOPMENT = "Development"
STAGING = "Staging"
PRODUCTION = "Production"


@dataclass(frozen=True)
class HostingEnvironment:
    """部署环境信息，进程生命周期内不可变"""

    environment_name: str = PRODUCTION
    application_name: str = "confighost"
    content_root: str = "."

    def is_environment(self, name: str) -> bool:
        return self.environment_name.lower() == name.lower()

    def is_development(self) -> bool:
        return self.is_environment(DEVELOPMENT)

    def is_staging(self) -> bool:
        return self.is_environment(STAGING)

    def is_production(self) -> bool:
        return self.is_environment(PRODUCTION)
