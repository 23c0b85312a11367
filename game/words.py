"""Default secret-word corpus, grouped by category."""

from game.state import WordCategory

DEFAULT_WORD_CATEGORIES = (
    WordCategory("Animals", (
        "Elephant", "Giraffe", "Penguin", "Dolphin", "Kangaroo", "Octopus",
        "Owl", "Tiger", "Camel", "Squirrel",
    )),
    WordCategory("Food", (
        "Pizza", "Sushi", "Pancake", "Taco", "Chocolate", "Popcorn",
        "Lasagna", "Croissant", "Watermelon", "Burrito",
    )),
    WordCategory("Places", (
        "Airport", "Beach", "Hospital", "Library", "Museum", "Stadium",
        "Supermarket", "Volcano", "Castle", "Submarine",
    )),
    WordCategory("Objects", (
        "Umbrella", "Guitar", "Toothbrush", "Candle", "Backpack", "Mirror",
        "Telescope", "Ladder", "Compass", "Hammock",
    )),
    WordCategory("Professions", (
        "Firefighter", "Astronaut", "Chef", "Pilot", "Dentist", "Magician",
        "Lifeguard", "Detective", "Farmer", "Librarian",
    )),
)
