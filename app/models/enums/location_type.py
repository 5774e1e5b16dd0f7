import enum


class LocationType(str, enum.Enum):
    warehouse = "warehouse"
    store = "store"
    distribution_center = "distribution_center"
    factory = "factory"
    office = "office"
    virtual = "virtual"
