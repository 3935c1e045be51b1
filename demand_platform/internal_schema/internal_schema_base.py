from sqlalchemy.orm import declarative_base

#: Base class of all tables defined in the internal database.
InternalSchemaBase = declarative_base()
