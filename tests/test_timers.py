"""Tests for the timer driver and speed meter."""

import pytest
from chip8.cpu import CPU
from chip8.timers import TimerDriver, SpeedMeter, TICK_MS


class TestTimerDriver:
    """Timer countdown tests."""

    def setup_method(self):
        self.cpu = CPU()
        self.beeps = []
        self.driver = TimerDriver(self.cpu, beep=lambda: self.beeps.append(1))

    def test_whole_ticks_and_carry(self):
        """100ms is six 16ms ticks with 4ms carried over."""
        self.cpu.sound_timer = 10
        self.cpu.delay_timer = 10
        assert self.driver.update(100) == 6
        assert self.cpu.sound_timer == 4
        assert self.cpu.delay_timer == 4
        assert self.driver.accumulated_ms == 4
        assert self.beeps == []

    def test_carry_completes_next_tick(self):
        """Carried time counts toward the next tick."""
        self.cpu.delay_timer = 10
        self.driver.update(100)
        assert self.driver.update(12) == 1
        assert self.cpu.delay_timer == 3
        assert self.driver.accumulated_ms == 0

    def test_below_one_tick(self):
        """Less than a tick changes nothing."""
        self.cpu.delay_timer = 5
        assert self.driver.update(TICK_MS - 1) == 0
        assert self.cpu.delay_timer == 5

    def test_beep_once_on_expiry(self):
        """The sound timer reaching zero beeps exactly once."""
        self.cpu.sound_timer = 3
        self.driver.update(100)
        assert self.cpu.sound_timer == 0
        assert self.beeps == [1]
        self.driver.update(100)
        assert self.beeps == [1]

    def test_beep_on_exact_expiry(self):
        """Counting down exactly to zero also beeps."""
        self.cpu.sound_timer = 2
        self.driver.update(2 * TICK_MS)
        assert self.beeps == [1]

    def test_no_beep_when_silent(self):
        """A zero sound timer never beeps."""
        self.cpu.delay_timer = 1
        self.driver.update(1000)
        assert self.cpu.delay_timer == 0
        assert self.beeps == []

    def test_negative_elapsed(self):
        """Negative time is rejected."""
        with pytest.raises(ValueError):
            self.driver.update(-1)

    def test_no_beep_callback(self):
        """Expiry without a beep collaborator is fine."""
        driver = TimerDriver(self.cpu)
        self.cpu.sound_timer = 1
        driver.update(TICK_MS)
        assert self.cpu.sound_timer == 0


class TestSpeedMeter:
    """Instructions-per-second tests."""

    def test_refreshes_each_second(self):
        """The rate only changes once a second has elapsed."""
        meter = SpeedMeter()
        meter.update(500, 1000)
        assert meter.per_second == 0
        meter.update(500, 2000)
        assert meter.per_second == 2000
        meter.update(1000, 2500)
        assert meter.per_second == 500

    def test_reset(self):
        meter = SpeedMeter()
        meter.update(1000, 100)
        meter.reset()
        assert meter.per_second == 0
        assert meter.last_count == 0
