from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from property_video.config import settings

engine = create_async_engine(settings.DATABASE_URL)

# expire_on_commit=False : les objets restent lisibles une fois la session fermée
# (le pipeline les transmet aux tâches de fond)
async_session = async_sessionmaker(engine, expire_on_commit=False)
