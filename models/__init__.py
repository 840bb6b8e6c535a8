from models.db_storage import DBStorage

# Engine and session are created by DBStorage.reload(), called from create_app()
storage = DBStorage()
