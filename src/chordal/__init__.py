# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later

# Event stages
# stage 0: upstream; classify physical keys into tap/hold events, deliver as KeyEvent
# stage 1: resolve the event against overlay, mode and global tables (or a leader prefix table)
# stage 2: hand the action to the host, then update the repeat overlay and the mode
# stage 3: publish the indicator state and notify external listeners of mode changes
