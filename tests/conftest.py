"""Shared capture fixtures for the ttop tests."""

import pytest

SAMPLE_CAPTURE = """\
top - 12:02:03 up  3:07,  0 users,  load average: 3.18, 1.16, 0.41
Threads: 262 total,   6 running, 256 sleeping,   0 stopped,   0 zombie
%Cpu(s): 85.7 us,  7.1 sy,  0.0 ni,  5.7 id,  1.4 wa,  0.0 hi,  0.0 si,  0.0 st
MiB Mem :  16008.2 total,  10953.7 free,   3713.5 used,   1341.1 buff/cache
MiB Swap:      0.0 total,      0.0 free,      0.0 used.  12032.0 avail Mem

    PID USER      PR  NI    VIRT    RES    SHR S  %CPU  %MEM     TIME+ COMMAND
    997 dremio    20   0 7009048   3.4g  98412 R  87.5  21.9   1:36.52 C2 CompilerThre
    996 dremio    20   0 7009048   3.4g  98412 R  81.2  21.9   1:35.89 C2 CompilerThre
   5190 dremio    20   0 7009064   3.4g  98412 S  18.8  21.9   0:03.83 rbound-command1
   5715 dremio    20   0 7009064   3.4g  98412 S  18.8  21.9   0:04.49 rbound-command5
   3293 dremio    20   0 7009064   3.4g  98412 S  12.5  21.9   0:05.55 e0 - 1927b3c3-f

top - 12:02:04 up  3:07,  0 users,  load average: 3.18, 1.16, 0.41
Threads: 262 total,   2 running, 260 sleeping,   0 stopped,   0 zombie
%Cpu(s): 75.3 us,  3.2 sy,  0.0 ni, 20.4 id,  0.0 wa,  0.0 hi,  1.0 si,  0.0 st
MiB Mem :  16008.2 total,  10953.7 free,   3713.5 used,   1341.1 buff/cache
MiB Swap:      0.0 total,      0.0 free,      0.0 used.  12032.0 avail Mem

    PID USER      PR  NI    VIRT    RES    SHR S  %CPU  %MEM     TIME+ COMMAND
    996 dremio    20   0 7008232   3.4g  98412 S  82.2  21.9   1:36.72 C2 CompilerThre
    997 dremio    20   0 7008232   3.4g  98412 R  82.2  21.9   1:37.35 C2 CompilerThre
    998 dremio    20   0 7008232   3.4g  98412 S  14.9  21.9   0:36.57 C1 CompilerThre
   5715 dremio    20   0 7008416   3.4g  98412 R   9.9  21.9   0:04.59 1927b3c3-3473-d
   3293 dremio    20   0 7008232   3.4g  98412 S   8.9  21.9   0:05.64 e0


top - 12:02:05 up  3:07,  0 users,  load average: 3.18, 1.16, 0.41
Threads: 263 total,  10 running, 253 sleeping,   0 stopped,   0 zombie
%Cpu(s): 83.3 us,  3.2 sy,  0.0 ni, 11.8 id,  0.2 wa,  0.0 hi,  1.5 si,  0.0 st
MiB Mem :  16008.2 total,  10953.7 free,   3713.5 used,   1341.1 buff/cache
MiB Swap:      0.0 total,      0.0 free,      0.0 used.  12032.0 avail Mem

    PID USER      PR  NI    VIRT    RES    SHR S  %CPU  %MEM     TIME+ COMMAND
    996 dremio    20   0 7018380   3.4g 101336 R  67.3  22.0   1:37.40 C2 CompilerThre
    997 dremio    20   0 7018380   3.4g 101336 R  59.4  22.0   1:37.95 C2 CompilerThre
    998 dremio    20   0 7018380   3.4g 101336 R  24.8  22.0   0:36.82 C1 CompilerThre
   5732 dremio    20   0 7018380   3.4g 101336 S  13.9  22.0   0:00.93 foreman15
   5715 dremio    20   0 7018380   3.4g 101336 S  12.9  22.0   0:04.72 rbound-command5
"""


@pytest.fixture
def sample_capture() -> str:
    """Three snapshots of 'top -H -b' output with five threads each."""
    return SAMPLE_CAPTURE
