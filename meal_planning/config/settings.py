from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List


class Settings(BaseSettings):
    # 数据库配置
    database_url: str = "duckdb://./data/meal_planning.duckdb"

    # JWT配置
    jwt_secret_key: str = "meal-planning-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24

    # API配置
    api_title: str = "Meal Planning API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api/v1"

    # 业务规则
    timezone: str = "UTC"
    submission_cutoff_hour: int = Field(22, ge=0, le=23)  # 22点之后需提前两天
    meal_types: List[str] = ["breakfast", "lunch", "dinner"]
    enforce_single_submission_per_date: bool = True

    # 用户与密码
    seed_demo_users: bool = False
    bcrypt_rounds: int = Field(12, ge=4, le=31)

    # 开发模式
    debug: bool = False

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


# 默认设置实例，create_app 未传入设置时使用
settings = Settings()
