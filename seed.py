import asyncio
from datetime import datetime, timedelta

from reflect.config import get_settings
from reflect.database import Store
from reflect.dates import add_years
from reflect.logging_config import configure_logging
from reflect.memory_generator import MemoryGenerator
from reflect.repositories import (
    AppSettingsRepository,
    MemoryRepository,
    PersonaRepository,
    PostRepository,
    UserRepository,
)
from reflect.schemas import MediaItem, MediaType, PersonaPreset, Post, PostType
from reflect.use_cases import CompleteOnboarding


async def seed():
    settings = get_settings()
    configure_logging(settings)
    store = Store.from_settings(settings)
    await store.reset()

    users = UserRepository(store)
    personas = PersonaRepository(store)
    posts = PostRepository(store)
    memories = MemoryRepository(store)

    # Owner and default persona
    result = await CompleteOnboarding(users, personas, AppSettingsRepository(store)).execute(
        name="Ann",
        bio="Keeping track of the good days",
        email="ann@example.com",
    )
    await users.update_premium_status(result.user.id, True)
    work = await personas.create_from_preset(PersonaPreset.WORK, result.user.id)

    now = datetime.now()
    sample_posts = [
        Post(
            caption="Sunrise run along the river",
            mood=8,
            persona_id=result.persona.id,
            activity_tags=["running", "outdoors"],
            created_at=add_years(now, -1),
        ),
        Post(
            caption="Shipped the release!",
            mood=9,
            persona_id=work.id,
            activity_tags=["work"],
            people_tags=["Sam"],
            is_gratitude=True,
            post_type=PostType.TEXT,
            created_at=add_years(now, -1) + timedelta(days=3),
        ),
        Post(
            caption="Rainy afternoon, stayed in and read",
            mood=6,
            persona_id=result.persona.id,
            activity_tags=["reading"],
            post_type=PostType.TEXT,
            created_at=now - timedelta(days=240),
        ),
        Post(
            caption="Dinner with the family",
            mood=10,
            persona_id=result.persona.id,
            people_tags=["Mum", "Sam"],
            created_at=now - timedelta(days=1),
        ),
    ]
    photo_post = sample_posts[0]
    photo_post.media_items = [
        MediaItem(
            type=MediaType.PHOTO,
            filename=MediaItem.generate_filename(MediaType.PHOTO),
            file_size=2_400_000,
            width=4032,
            height=3024,
            post_id=photo_post.id,
            created_at=photo_post.created_at,
        )
    ]

    await posts.create_batch(sample_posts)
    for _ in sample_posts:
        await users.increment_post_count(result.user.id)
    current, longest = await posts.fetch_streaks()
    await users.update_streaks(result.user.id, current, longest)

    todays = await MemoryGenerator(posts, memories).generate_todays_memories()

    print("Database seeded successfully!")
    print(f"  - User {result.user.name} with {len(await personas.fetch_personas(result.user.id))} personas")
    print(f"  - {len(sample_posts)} posts")
    print(f"  - {len(todays)} memories for today")

    await store.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
