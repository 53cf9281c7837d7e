"""
Shared fixtures: a small decompiled corpus laid out the way the cache stores it.
"""

import tempfile
from pathlib import Path

import pytest

from mcp_mcdev.config import Config

SECONDARY_VERSION = "0.100.0"

PRIMARY_FILES = {
    "net/minecraft/client/Minecraft.java": """package net.minecraft.client;

import net.minecraft.util.Tickable;

public class Minecraft implements Tickable {
    private static Minecraft instance;
    public int fps;

    public static Minecraft getInstance() {
        return instance;
    }

    public void tick() {
        fps++;
    }
}
""",
    "net/minecraft/entity/LivingEntity.java": """package net.minecraft.entity;

public abstract class LivingEntity extends Entity {
    protected float health;

    public float getHealth() {
        return health;
    }
}
""",
    "net/minecraft/entity/player/PlayerEntity.java": """package net.minecraft.entity.player;

import net.minecraft.entity.LivingEntity;

public class PlayerEntity extends LivingEntity implements Attackable {
    public void attack(LivingEntity target, float amount) {
        target.damage(amount);
    }
}
""",
    "net/minecraft/util/Tickable.java": """package net.minecraft.util;

public interface Tickable {
    void tick();
}
""",
    "net/minecraft/package-info.java": """package net.minecraft;
""",
    "net/minecraftforge/common/ForgeHooks.java": """package net.minecraftforge.common;

public class ForgeHooks {
}
""",
    "Standalone.java": """class Standalone {
    void run() {
    }
}
""",
}

SECONDARY_FILES = {
    "net/fabricmc/api/ModInitializer.java": """package net.fabricmc.api;

public interface ModInitializer {
    void onInitialize();
}
""",
}


def write_files(root: Path, files: dict[str, str]) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


@pytest.fixture
def home_dir():
    """Create an empty mcdev home directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config(home_dir):
    """Config rooted in a temporary home, with a secondary version."""
    return Config(home_dir=home_dir, secondary_version=SECONDARY_VERSION)


@pytest.fixture
def corpus(config):
    """Write the primary and secondary sample sources into the cache layout."""
    write_files(config.primary_source_dir(), PRIMARY_FILES)
    write_files(config.secondary_source_dir(), SECONDARY_FILES)
    return config
