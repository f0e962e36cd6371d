"""Lua scripts for the atomic queue state transitions.

Each script runs as one indivisible unit on the Redis server. Scripts are not
rolled back on error, so every script finishes its reads and validation before
its first write. Current time is passed in ARGV rather than read with TIME so
producers, consumers and tests share one clock.
"""

POP_BATCH = """
-- KEYS: [queue]
-- ARGV: [quantity]
local quantity = tonumber(ARGV[1])

local messages = redis.call('LRANGE', KEYS[1], 0, quantity - 1)
if #messages > 0 then
    redis.call('LTRIM', KEYS[1], #messages, -1)
end

return messages
"""

POP_BATCH_WITH_ACK = """
-- KEYS: [queue, ack_index, ack_storage]
-- ARGV: [quantity, deadline, batch_size]
local quantity, deadline, batch_size = tonumber(ARGV[1]), ARGV[2], tonumber(ARGV[3])

local messages = redis.call('LRANGE', KEYS[1], 0, quantity - 1)
if #messages == 0 then
    return messages
end

-- Entries without a readable id are tracked under their raw encoding.
local ids = {}
for i = 1, #messages do
    local ok, decoded = pcall(cjson.decode, messages[i])
    if ok and type(decoded) == 'table' and type(decoded['id']) == 'string' then
        ids[i] = decoded['id']
    else
        ids[i] = messages[i]
    end
end

redis.call('LTRIM', KEYS[1], #messages, -1)

for i = 1, #messages, batch_size do
    local scored, stored = {}, {}
    for j = i, math.min(i + batch_size - 1, #messages) do
        table.insert(scored, deadline)
        table.insert(scored, ids[j])
        table.insert(stored, ids[j])
        table.insert(stored, messages[j])
    end
    redis.call('ZADD', KEYS[2], unpack(scored))
    redis.call('HSET', KEYS[3], unpack(stored))
end

return messages
"""

PROMOTE_DELAYED = """
-- KEYS: [delayed, queue]
-- ARGV: [now, batch_size]
local now, batch_size = ARGV[1], tonumber(ARGV[2])

local messages = redis.call('ZRANGEBYSCORE', KEYS[1], '-inf', now)
if #messages == 0 then
    return 0
end

redis.call('ZREMRANGEBYRANK', KEYS[1], 0, #messages - 1)
for i = 1, #messages, batch_size do
    redis.call('RPUSH', KEYS[2], unpack(messages, i, math.min(i + batch_size - 1, #messages)))
end

return #messages
"""

PROMOTE_EXPIRED_ACKS = """
-- KEYS: [ack_index, ack_storage, queue]
-- ARGV: [now, batch_size]
local now, batch_size = ARGV[1], tonumber(ARGV[2])

local ids = redis.call('ZRANGEBYSCORE', KEYS[1], '-inf', now)
if #ids == 0 then
    return 0
end

redis.call('ZREMRANGEBYRANK', KEYS[1], 0, #ids - 1)

local moved = 0
for i = 1, #ids, batch_size do
    local last = math.min(i + batch_size - 1, #ids)
    local messages = redis.call('HMGET', KEYS[2], unpack(ids, i, last))
    redis.call('HDEL', KEYS[2], unpack(ids, i, last))

    -- HMGET yields false for ids with no stored encoding.
    local present = {}
    for j = 1, last - i + 1 do
        if messages[j] then
            table.insert(present, messages[j])
        end
    end
    if #present > 0 then
        redis.call('RPUSH', KEYS[3], unpack(present))
        moved = moved + #present
    end
end

return moved
"""

ACKNOWLEDGE = """
-- KEYS: [ack_index, ack_storage]
-- ARGV: [batch_size, id...]
local batch_size = tonumber(ARGV[1])

local removed = 0
for i = 2, #ARGV, batch_size do
    local last = math.min(i + batch_size - 1, #ARGV)
    removed = removed + redis.call('ZREM', KEYS[1], unpack(ARGV, i, last))
    redis.call('HDEL', KEYS[2], unpack(ARGV, i, last))
end

return removed
"""
