from sqlalchemy.orm import declarative_base

#: Base class of all input feed tables, which are only read by the platform.
FeedSchemaBase = declarative_base()
