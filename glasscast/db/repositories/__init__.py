from .saved_city_repository import CityPersistenceProtocol, SavedCityPersistence

__all__ = ["CityPersistenceProtocol", "SavedCityPersistence"]
