"""
CHIP-8 Instance Manager
Owns several independent VMs and schedules each one at its own speed,
with the 60Hz timers decoupled from the instruction rate
"""

import time
from collections import deque
from enum import Enum

import config
from chip8 import Chip8
from errors import Chip8Error, RomTooLargeError
from memory import ROM_CAPACITY, read_rom_file
from utils import debug_print


class InstanceState(Enum):
    EMPTY = "Empty"
    LOADED = "Loaded"
    RUNNING = "Running"


class Instance:
    def __init__(self, instance_id, quirks=None, seed=None, clock=time.monotonic):
        self.id = instance_id
        self.interpreter = Chip8(quirks, seed)
        self.quirks = self.interpreter.quirks
        self.state = InstanceState.EMPTY

        # Scheduling: `multiplier` instructions every 1/ips seconds
        self.ips = config.TIMING["ips"]
        self.multiplier = config.TIMING["multiplier"]
        self.input_enabled = config.INSTANCE["input_enabled"]
        self.instruction_log = deque(maxlen=config.INSTANCE["instruction_log_max"])
        self.fault = None  # Last Chip8Error raised while running

        # Each instance keeps its own clocks
        self.clock = clock
        now = clock()
        self.last_timer_time = now
        self.last_cycle_time = now

    def load(self, rom_path):
        """Replace the resident ROM with a file's contents"""
        self.load_bytes(read_rom_file(rom_path))
        debug_print(f"Instance {self.id}: loaded '{rom_path}'")

    def load_bytes(self, data):
        """Unload the current ROM and load `data`; a rejected image changes nothing"""
        if len(data) > ROM_CAPACITY:
            raise RomTooLargeError(len(data), ROM_CAPACITY)
        self.interpreter.unload()
        self.interpreter.load(data)
        self.instruction_log.clear()
        self.fault = None
        self.state = InstanceState.LOADED

    def start(self):
        if self.state is InstanceState.EMPTY:
            debug_print(f"Instance {self.id}: nothing loaded, not starting")
            return False
        self.state = InstanceState.RUNNING
        now = self.clock()
        self.last_timer_time = now
        self.last_cycle_time = now
        return True

    def stop(self):
        if self.state is InstanceState.RUNNING:
            self.state = InstanceState.LOADED

    def reset(self):
        self.interpreter.reset()
        self.instruction_log.clear()
        self.fault = None

    def reset_and_stop(self):
        self.reset()
        self.stop()

    def step(self):
        """Run one scheduled slot right now, regardless of the clock"""
        if self.state is InstanceState.EMPTY:
            return 0
        return self._run_slot()

    def set_speed(self, ips=None, multiplier=None):
        """Change the schedule; values are clamped to the configured limits"""
        if ips is not None:
            self.ips = max(0, min(int(ips), config.TIMING["max_ips"]))
        if multiplier is not None:
            self.multiplier = max(1, min(int(multiplier), config.TIMING["max_multiplier"]))

    def process_input(self, states):
        """Copy host key states into the VM when input is enabled"""
        if self.input_enabled:
            self.interpreter.set_keys(states)

    def run(self, now=None):
        """Advance timers and instructions by the wall time elapsed.

        At most one timer tick and one instruction slot happen per call, so
        the host should call this at least 60 times per second. Returns the
        number of instructions executed.
        """
        if self.state is not InstanceState.RUNNING or self.ips == 0:
            return 0

        now = self.clock() if now is None else now
        executed = 0

        if now - self.last_timer_time >= config.timer_interval():
            self.interpreter.tick_timers()
            self.last_timer_time = now

        if now - self.last_cycle_time >= 1.0 / self.ips:
            executed = self._run_slot()
            self.last_cycle_time = now

        return executed

    def _run_slot(self):
        executed = 0
        try:
            for _ in range(self.multiplier):
                self.interpreter.step()
                self.instruction_log.append(self.interpreter.get_instruction())
                executed += 1
        except Chip8Error as e:
            print(f"Instance {self.id}: {e}")
            self.fault = e
            self.stop()
        return executed

    def describe(self):
        """Rows for a status table: id, state and quirk settings"""
        return [("ID", str(self.id)), ("State", self.state.value)] + self.quirks.describe()


class InstanceManager:
    def __init__(self, clock=time.monotonic):
        self.instances = []  # Kept sorted by id
        self.selected_id = None
        self.clock = clock

    def _instance_search(self):
        """Lowest id not yet in use (binary search over the sorted list)"""
        lo = 0
        hi = len(self.instances)
        while lo < hi:
            mid = lo + (hi - lo) // 2
            if self.instances[mid].id == mid:
                lo = mid + 1
            else:
                hi = mid
        return lo

    def create(self, quirks=None, seed=None):
        pos = self._instance_search()
        instance = Instance(pos, quirks, seed, self.clock)
        self.instances.insert(pos, instance)
        debug_print(f"InstanceManager: created instance {pos}")
        return instance

    def get(self, instance_id):
        for instance in self.instances:
            if instance.id == instance_id:
                return instance
        raise KeyError(f"No instance with id {instance_id}")

    def delete(self, instance_id):
        instance = self.get(instance_id)
        self.instances.remove(instance)
        if self.selected_id == instance_id:
            self.selected_id = None
        debug_print(f"InstanceManager: deleted instance {instance_id}")

    def select(self, instance_id):
        self.get(instance_id)  # KeyError for unknown ids
        self.selected_id = instance_id

    @property
    def selected(self):
        if self.selected_id is None:
            return None
        return self.get(self.selected_id)

    def run(self, now=None, keys=None):
        """Drive every running instance once; returns instructions executed"""
        now = self.clock() if now is None else now
        total = 0
        for instance in self.instances:
            if instance.state is InstanceState.RUNNING:
                total += instance.run(now)
                if keys is not None:
                    instance.process_input(keys)
        return total
